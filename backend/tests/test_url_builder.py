"""Tests for canonical attachment paths, URLs and focal point helpers."""
import pytest

from attachvault.models import Crop
from attachvault.services.url_builder import (
    MISSING_ATTACHMENT_URL,
    attachment_url,
    build_base_path,
    build_path,
    focal_point_to_background_position,
    get_focal_point,
    has_focal_point,
)

PHOTO = {"id": "x", "name": "photo", "extension": "jpg", "group": "images"}
REPORT = {"id": "y", "name": "report", "extension": "pdf", "group": "office"}


class TestBuildPath:
    def test_explicit_full_size(self):
        assert build_path(PHOTO, size="full") == "/attachments/x-photo.full.jpg"

    def test_default_size_is_full_for_images(self):
        assert build_path(PHOTO) == "/attachments/x-photo.full.jpg"

    def test_crop_suffix_precedes_size_suffix(self):
        crop = {"left": 10, "top": 5, "width": 200, "height": 100}
        assert build_path(PHOTO, crop=crop) == "/attachments/x-photo.10.5.200.100.full.jpg"

    def test_crop_dataclass(self):
        crop = Crop(top=5, left=10, width=200, height=100)
        assert build_path(PHOTO, size="one-half", crop=crop) == (
            "/attachments/x-photo.10.5.200.100.one-half.jpg"
        )

    def test_original_has_no_size_suffix(self):
        assert build_path(PHOTO, size="original") == "/attachments/x-photo.jpg"

    def test_non_images_never_get_size_suffix(self):
        assert build_path(REPORT) == "/attachments/y-report.pdf"
        assert build_path(REPORT, size="full") == "/attachments/y-report.pdf"

    def test_designated_crop_is_used(self):
        photo = dict(PHOTO, crop={"top": 1, "left": 2, "width": 3, "height": 4})
        assert build_path(photo) == "/attachments/x-photo.2.1.3.4.full.jpg"

    def test_hoisted_crop_beats_designated_crop(self):
        photo = dict(
            PHOTO,
            crop={"top": 1, "left": 2, "width": 3, "height": 4},
            _crop={"top": 9, "left": 8, "width": 7, "height": 6},
        )
        assert build_path(photo) == "/attachments/x-photo.8.9.7.6.full.jpg"

    def test_crop_false_disables_selection(self):
        photo = dict(PHOTO, crop={"top": 1, "left": 2, "width": 3, "height": 4})
        assert build_path(photo, crop=False) == "/attachments/x-photo.full.jpg"

    @pytest.mark.parametrize("crop", [{"top": 1, "left": 2, "width": 0, "height": 4}, {}, {"width": 5}])
    def test_unusable_crop_is_ignored(self, crop):
        assert build_path(PHOTO, crop=crop) == "/attachments/x-photo.full.jpg"

    def test_base_path(self):
        assert build_base_path(PHOTO, Crop(top=0, left=0, width=5, height=5)) == (
            "/attachments/x-photo.0.0.5.5"
        )


class TestAttachmentUrl:
    def test_prefixes_base_url(self):
        assert attachment_url(PHOTO, "https://cdn.example.com/uploads/") == (
            "https://cdn.example.com/uploads/attachments/x-photo.full.jpg"
        )

    def test_blob_path_skips_base_url(self):
        assert attachment_url(PHOTO, "https://cdn", size="original", blob_path=True) == (
            "/attachments/x-photo.jpg"
        )

    def test_missing_attachment_gets_placeholder(self):
        assert attachment_url(None, "https://cdn") == MISSING_ATTACHMENT_URL


class TestFocalPoint:
    def test_no_focal_point(self):
        assert has_focal_point(PHOTO) is False
        assert get_focal_point(PHOTO) is None
        assert focal_point_to_background_position(PHOTO) == "center center"

    def test_direct_focal_point(self):
        photo = dict(PHOTO, x=20, y=75)
        assert get_focal_point(photo) == {"x": 20, "y": 75}
        assert focal_point_to_background_position(photo) == "20% 75%"

    def test_hoisted_focal_point_wins(self):
        photo = dict(PHOTO, x=20, y=75, _focalPoint={"x": 50, "y": 10})
        assert get_focal_point(photo) == {"x": 50, "y": 10}

    def test_empty_hoisted_focal_point(self):
        assert has_focal_point(dict(PHOTO, _focalPoint={})) is False

    def test_none_is_tolerated(self):
        assert has_focal_point(None) is False
