"""nametag - Tags embedded in filenames

This package reads, edits and writes a bracketed tag segment inside a file
name, e.g. `report[draft q3].pdf`, leaving the rest of the name untouched.
"""

from .nametag import (
    NameTag,
    TagSet,
    TagsView,
    ByteClass,
    NameTagError,
    InvalidEncodingError,
    classify,
    split_tags,
)

__version__ = "0.1.0"

__all__ = [
    "NameTag",
    "TagSet",
    "TagsView",
    "ByteClass",
    "NameTagError",
    "InvalidEncodingError",
    "classify",
    "split_tags",
]
