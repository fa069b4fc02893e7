"""Filename Tag Encoding

This module embeds a set of free-form tags inside a filename using a
bracketed segment, e.g. `holiday[beach family].jpg`, and round-trips
everything outside that segment byte-for-byte.
"""

import bisect
import logging
import os
from collections.abc import Sequence
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

NameLike = Union[bytes, bytearray, str, os.PathLike]
TagLike = Union[bytes, bytearray, str]

# Delimiter bytes
OPEN_BRACKET = ord("[")
CLOSE_BRACKET = ord("]")
EXTENSION_DOT = ord(".")
COMMA = ord(",")
WHITESPACE = frozenset(b" \t\n\r\x0b\x0c")
TAG_JOINER = b" "


# Error classes
class NameTagError(Exception):
    """Base exception for name tag errors"""
    pass


class InvalidEncodingError(NameTagError):
    """Serialized name is not valid text in the requested encoding"""
    def __init__(self, data: bytes, encoding: str):
        self.data = data
        self.encoding = encoding
        super().__init__(f"Name is not valid {encoding}: {data!r}")


class ByteClass(Enum):
    """Role a single byte plays while scanning a name"""
    OPEN = 1
    CLOSE = 2
    SEPARATOR = 3
    OTHER = 4


def classify(byte: int) -> ByteClass:
    """Classify one byte of a name"""
    if byte == OPEN_BRACKET:
        return ByteClass.OPEN
    if byte == CLOSE_BRACKET:
        return ByteClass.CLOSE
    if byte == COMMA or byte in WHITESPACE:
        return ByteClass.SEPARATOR
    return ByteClass.OTHER


def _to_bytes(value: NameLike) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return os.fsencode(value)


def split_tags(segment: bytes) -> List[bytes]:
    """Split a tag segment into tokens

    Separators and bracket bytes both end a token; empty tokens are dropped.
    """
    tokens: List[bytes] = []
    start = None
    for pos, byte in enumerate(segment):
        if classify(byte) == ByteClass.OTHER:
            if start is None:
                start = pos
        elif start is not None:
            tokens.append(segment[start:pos])
            start = None
    if start is not None:
        tokens.append(segment[start:])
    return tokens


class TagSet:
    """Deduplicated tag collection kept in ascending byte order"""

    def __init__(self, tags: Iterable[bytes] = ()):
        self._tags: List[bytes] = []
        for tag in tags:
            self.add(tag)

    def add(self, tag: bytes) -> bool:
        """Insert a tag, returning False if it was empty or already present"""
        if not tag:
            return False
        pos = bisect.bisect_left(self._tags, tag)
        if pos < len(self._tags) and self._tags[pos] == tag:
            return False
        self._tags.insert(pos, tag)
        return True

    def remove(self, tag: bytes) -> bool:
        """Remove a tag, returning False if it was absent"""
        pos = bisect.bisect_left(self._tags, tag)
        if pos < len(self._tags) and self._tags[pos] == tag:
            del self._tags[pos]
            return True
        return False

    def clear(self) -> None:
        self._tags.clear()

    def __contains__(self, tag: object) -> bool:
        if not isinstance(tag, bytes):
            return False
        pos = bisect.bisect_left(self._tags, tag)
        return pos < len(self._tags) and self._tags[pos] == tag

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __getitem__(self, index):
        return self._tags[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagSet):
            return NotImplemented
        return self._tags == other._tags

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"TagSet({self._tags!r})"

    def to_bytes(self) -> bytes:
        """Join the tags with a single space, without brackets"""
        return TAG_JOINER.join(self._tags)


class TagsView(Sequence):
    """Read-only live view over the tags of a NameTag

    Iterating it again starts over; it reflects later changes to the tags.
    """

    def __init__(self, tags: TagSet):
        self._tags = tags

    def __getitem__(self, index):
        return self._tags[index]

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._tags)

    def __repr__(self) -> str:
        return f"TagsView({list(self._tags)!r})"


class NameTag:
    """A filename split around its bracketed tag segment

    Examples:
    - `somefile[tagA tagB].txt` has prefix `somefile`, suffix `.txt`
    - `somefile.txt` has no tags; new tags go in before the first `.`
    - `[tagA]somefile.txt` has an empty prefix
    """

    def __init__(self, prefix: bytes = b"", tags: Iterable[bytes] = (), suffix: bytes = b""):
        """Create a name from parts that are already split

        Tags are tokenized, so a value holding separators becomes several tags
        """
        self._prefix = bytes(prefix)
        self._suffix = bytes(suffix)
        self._tags = TagSet()
        for tag in tags:
            self.add_tag(tag)

    @classmethod
    def parse(cls, name: NameLike) -> 'NameTag':
        """Create a name tag from raw bytes or a path-like value

        The first balanced `[...]` span is the tag segment. Without one, the
        name is split at the first `.` (or its end) and has no tags.
        """
        data = _to_bytes(name)
        bounds = cls._find_tag_bounds(data)
        if bounds is None:
            split = data.find(bytes([EXTENSION_DOT]))
            if split == -1:
                split = len(data)
            logger.debug("No tag segment in %r, insertion point at %d", data, split)
            instance = cls(data[:split], (), data[split:])
        else:
            upper, lower = bounds
            instance = cls(data[:upper], (), data[lower:])
            instance._tags = cls.parse_tags(data[upper + 1:lower - 1])
        return instance

    @classmethod
    def from_path(cls, path: NameLike) -> 'NameTag':
        """Create a name tag from an OS path or file name"""
        return cls.parse(path)

    @staticmethod
    def parse_tags(segment: bytes) -> TagSet:
        """Parse the inside of a tag segment into a TagSet

        Whitespace and commas separate tags. Nested brackets are flattened:
        `nottag [tagB tagA]` yields nottag, tagA and tagB.
        """
        return TagSet(split_tags(bytes(segment)))

    @staticmethod
    def _find_tag_bounds(data: bytes) -> Optional[Tuple[int, int]]:
        """Locate the first balanced bracket span as (upper, lower)

        `upper` indexes the opening bracket, `lower` is one past the closing
        bracket. A closing bracket outside any span is ordinary text.
        """
        depth = 0
        upper = 0
        for pos, byte in enumerate(data):
            kind = classify(byte)
            if kind == ByteClass.OPEN:
                if depth == 0:
                    upper = pos
                depth += 1
            elif kind == ByteClass.CLOSE and depth > 0:
                depth -= 1
                if depth == 0:
                    return upper, pos + 1
        if depth > 0:
            logger.debug("Unmatched '[' at %d in %r", upper, data)
        return None

    @property
    def prefix(self) -> bytes:
        return self._prefix

    @property
    def suffix(self) -> bytes:
        return self._suffix

    def add_tag(self, tag: TagLike) -> None:
        """Add a tag; adding a present tag does nothing"""
        for token in split_tags(_to_bytes(tag)):
            self._tags.add(token)

    def remove_tag(self, tag: TagLike) -> None:
        """Remove a tag; removing an absent tag does nothing"""
        for token in split_tags(_to_bytes(tag)):
            self._tags.remove(token)

    def clear_tags(self) -> None:
        self._tags.clear()

    def has_tag(self, tag: TagLike) -> bool:
        return _to_bytes(tag) in self._tags

    def __contains__(self, tag: object) -> bool:
        if not isinstance(tag, (bytes, bytearray, str)):
            return False
        return self.has_tag(tag)

    def get_tags(self) -> TagsView:
        """Get the tags in ascending byte order"""
        return TagsView(self._tags)

    def tags_to_bytes(self) -> bytes:
        """Serialize just the bracketed segment, or nothing when untagged"""
        if not self._tags:
            return b""
        return bytes([OPEN_BRACKET]) + self._tags.to_bytes() + bytes([CLOSE_BRACKET])

    def into_bytes(self) -> bytes:
        """Get the canonical serialized name

        An empty tag set emits no brackets at all
        """
        return self._prefix + self.tags_to_bytes() + self._suffix

    def try_into_string(self, encoding: str = "utf-8") -> str:
        """Decode the serialized name as text

        Raises InvalidEncodingError if the bytes are not valid `encoding`;
        the instance is left untouched and can still be serialized to bytes.
        """
        data = self.into_bytes()
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            logger.debug("Cannot decode %r as %s: %s", data, encoding, exc)
            raise InvalidEncodingError(data, encoding) from exc

    def to_os_name(self) -> str:
        """Get the serialized name as the platform's native str"""
        return os.fsdecode(self.into_bytes())

    @classmethod
    def canonical(cls, name: NameLike) -> bytes:
        """Get the canonical form of a name"""
        return cls.parse(name).into_bytes()

    def __bytes__(self) -> bytes:
        return self.into_bytes()

    def __repr__(self) -> str:
        return f"NameTag({self.into_bytes()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NameTag):
            return NotImplemented
        return (self._prefix == other._prefix
                and self._suffix == other._suffix
                and self._tags == other._tags)

    __hash__ = None  # type: ignore[assignment]
