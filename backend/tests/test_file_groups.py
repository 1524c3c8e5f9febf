"""Tests for extension classification."""
from attachvault.services.file_groups import (
    DEFAULT_FILE_GROUPS, FileGroup, accepted_extensions, find_group, get_file_group,
)


def test_image_extension():
    assert get_file_group("png").name == "images"


def test_lookup_is_case_insensitive():
    assert get_file_group("PDF").name == "office"


def test_alias_maps_to_canonical_extension():
    group = get_file_group("JPEG")
    assert group.name == "images"
    assert group.image is True


def test_unknown_extension():
    assert get_file_group("exe") is None
    assert get_file_group("") is None


def test_custom_groups():
    groups = [FileGroup(name="audio", extensions=frozenset({"mp3"}), extension_maps={"mpeg3": "mp3"})]
    assert get_file_group("mpeg3", groups).name == "audio"
    assert get_file_group("png", groups) is None


def test_accepted_extensions_include_aliases():
    accepted = accepted_extensions(DEFAULT_FILE_GROUPS)
    assert "jpeg" in accepted
    assert "docx" in accepted
    assert accepted == sorted(accepted)


def test_find_group():
    assert find_group("office").image is False
    assert find_group("nope") is None
