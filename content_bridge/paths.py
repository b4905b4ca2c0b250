"""
Field path grammar shared by catalog inference, parsing and reconstruction.

    path     := segment ('.' segment)*
    segment  := name | name '[]' | name '[' digits ']'

Catalog paths are type-level and never carry a numeric index
(``modules[].quoteModule.author``). Generated value maps may address a
concrete item (``modules[2].quoteModule.author``).
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from content_bridge.errors import InvalidFieldPathError

SEGMENT_PATTERN = re.compile(r"^(?P<name>[^.\[\]]+)(?:\[(?P<index>\d*)\])?$")


@dataclass(frozen=True)
class PathSegment:
    """One dot-separated piece of a field path"""
    name: str
    is_array: bool = False
    index: Optional[int] = None

    def __str__(self) -> str:
        if not self.is_array:
            return self.name
        return f"{self.name}[{'' if self.index is None else self.index}]"


@dataclass(frozen=True)
class PathMatch:
    """Result of matching an indexed value-map key against a catalog path"""
    indices: Tuple[Optional[int], ...]

    @property
    def index(self) -> Optional[int]:
        """Index captured at the outermost array segment"""
        return self.indices[0] if self.indices else None


def parse_path(path: str) -> List[PathSegment]:
    """Split a field path into segments, raising on malformed input"""
    if not path:
        raise InvalidFieldPathError(path, "empty path")

    segments = []
    for raw in path.split("."):
        match = SEGMENT_PATTERN.match(raw)
        if not match:
            raise InvalidFieldPathError(path, f"bad segment {raw!r}")
        index = match.group("index")
        segments.append(PathSegment(
            name=match.group("name"),
            is_array=index is not None,
            index=int(index) if index else None,
        ))
    return segments


def format_path(segments: Iterable[PathSegment]) -> str:
    return ".".join(str(segment) for segment in segments)


def join_path(base: Optional[str], child: str) -> str:
    return f"{base}.{child}" if base else child


def array_path(base: str, module_type: Optional[str] = None) -> str:
    """``base[]`` or ``base[].moduleType`` for a polymorphic item"""
    item_path = f"{base}[]"
    return f"{item_path}.{module_type}" if module_type else item_path


def leaf_name(path: str) -> str:
    return parse_path(path)[-1].name


def catalog_path(path: str) -> str:
    """Drop explicit indices: ``a[3].b`` -> ``a[].b``"""
    return format_path(
        PathSegment(segment.name, segment.is_array) for segment in parse_path(path)
    )


def is_indexed(path: str) -> bool:
    return any(segment.index is not None for segment in parse_path(path))


def plain_names(path: str) -> List[str]:
    """Segment names of a path that contains no array segment"""
    segments = parse_path(path)
    if any(segment.is_array for segment in segments):
        raise InvalidFieldPathError(path, "array segment in a plain path")
    return [segment.name for segment in segments]


def match_indexed_path(pattern: str, candidate: str) -> Optional[PathMatch]:
    """Match ``candidate`` against a catalog path whose ``[]`` segments
    accept an optional index. Returns None when the key does not match or
    is not a valid path."""
    try:
        expected = parse_path(pattern)
        actual = parse_path(candidate)
    except InvalidFieldPathError:
        return None

    if len(expected) != len(actual):
        return None

    indices = []
    for want, got in zip(expected, actual):
        if want.name != got.name or want.is_array != got.is_array:
            return None
        if want.is_array:
            indices.append(got.index)
    return PathMatch(tuple(indices))
