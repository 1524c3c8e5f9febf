"""File groups: the static table that decides which extensions are accepted."""
from dataclasses import dataclass, field
from typing import Optional, Sequence


@dataclass(frozen=True)
class FileGroup:
    name: str
    extensions: frozenset[str]
    extension_maps: dict[str, str] = field(default_factory=dict)  # alias -> canonical
    image: bool = False


DEFAULT_FILE_GROUPS: tuple[FileGroup, ...] = (
    FileGroup(
        name="images",
        extensions=frozenset({"gif", "jpg", "png"}),
        extension_maps={"jpeg": "jpg"},
        image=True,
    ),
    FileGroup(
        name="office",
        extensions=frozenset({
            "txt", "rtf", "pdf", "xls", "ppt", "doc", "pptx", "sldx", "ppsx",
            "potx", "xlsx", "xltx", "csv", "docx", "dotx",
        }),
    ),
)

# Extensions the synchronizer treats as having scaled variants
RASTER_EXTENSIONS = frozenset({"gif", "jpg", "png"})


def get_file_group(
    extension: str, groups: Sequence[FileGroup] = DEFAULT_FILE_GROUPS
) -> Optional[FileGroup]:
    """Return the group accepting ``extension`` (case-insensitive, alias-aware)."""
    extension = (extension or "").lower()
    for group in groups:
        candidate = group.extension_maps.get(extension, extension)
        if candidate in group.extensions:
            return group
    return None


def find_group(name: str, groups: Sequence[FileGroup] = DEFAULT_FILE_GROUPS) -> Optional[FileGroup]:
    return next((g for g in groups if g.name == name), None)


def accepted_extensions(groups: Sequence[FileGroup] = DEFAULT_FILE_GROUPS) -> list[str]:
    accepted: set[str] = set()
    for group in groups:
        accepted |= group.extensions
        accepted |= set(group.extension_maps)
    return sorted(accepted)
