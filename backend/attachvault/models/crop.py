"""Crop rectangle value type."""
from dataclasses import dataclass, asdict
from typing import Mapping, Optional

CROP_FIELDS = ("top", "left", "width", "height")


@dataclass(frozen=True)
class Crop:
    """Rectangular sub-region of an image. Identity is the 4-tuple itself."""
    top: int
    left: int
    width: int
    height: int

    @classmethod
    def from_mapping(cls, data: Mapping) -> "Crop":
        return cls(**{key: int(data[key]) for key in CROP_FIELDS})

    @classmethod
    def parse(cls, data: object) -> Optional["Crop"]:
        """Like ``from_mapping`` but returns None for a malformed entry."""
        try:
            return cls.from_mapping(data)  # type: ignore[arg-type]
        except (KeyError, TypeError, ValueError):
            return None

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def suffix(self) -> str:
        """Path fragment in left.top.width.height order."""
        return f"{self.left}.{self.top}.{self.width}.{self.height}"
