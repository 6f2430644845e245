"""Path pattern parsing.

Pattern syntax::

    /accounts              literal segments
    /accounts/:id          ``:name`` matches exactly one non-empty segment
    /files/*path           ``*name`` (last segment only) matches the rest

Trailing and doubled slashes are ignored, so ``/accounts/`` and
``/accounts`` are the same pattern.
"""

import re
from dataclasses import dataclass
from enum import IntEnum

from caaspay.errors import ConfigError, ConfigErrorKind

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SegmentKind(IntEnum):
    """Segment kinds, ordered from most to least specific."""

    LITERAL = 0
    PARAM = 1
    CATCH_ALL = 2


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Literal: ``accounts``  (kind=LITERAL, value="accounts")
    Param:   ``:id``       (kind=PARAM, value="id")
    Rest:    ``*path``     (kind=CATCH_ALL, value="path")
    """

    kind: SegmentKind
    value: str

    @property
    def is_param(self) -> bool:
        return self.kind is not SegmentKind.LITERAL

    def __str__(self) -> str:
        if self.kind is SegmentKind.PARAM:
            return f":{self.value}"
        if self.kind is SegmentKind.CATCH_ALL:
            return f"*{self.value}"
        return self.value


def split_path(path: str) -> list[str]:
    """Split a concrete request path into its non-empty segments."""
    return [part for part in path.split("/") if part]


def parse_pattern(pattern: str) -> tuple[PathSegment, ...]:
    """Parse a route pattern string into segments.

    Examples::

        "/accounts"          -> (PathSegment(LITERAL, "accounts"),)
        "/accounts/:id"      -> (..., PathSegment(PARAM, "id"))
        "/files/*path"       -> (..., PathSegment(CATCH_ALL, "path"))

    Raises ``ConfigError`` (MALFORMED) for patterns that do not start with
    ``/``, empty or invalid parameter names, names repeated within one
    pattern, or a catch-all that is not the final segment.
    """
    if not isinstance(pattern, str) or not pattern.startswith("/"):
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"path pattern must be a string starting with '/': {pattern!r}",
        )

    parts = split_path(pattern)
    segments: list[PathSegment] = []
    names: set[str] = set()

    for position, part in enumerate(parts):
        if part[0] in ":*":
            name = part[1:]
            if not _NAME_RE.match(name):
                raise ConfigError(
                    ConfigErrorKind.MALFORMED,
                    f"invalid parameter name {part!r} in {pattern!r}",
                )
            if name in names:
                raise ConfigError(
                    ConfigErrorKind.MALFORMED,
                    f"parameter {name!r} repeated in {pattern!r}",
                )
            names.add(name)
            if part[0] == "*":
                if position != len(parts) - 1:
                    raise ConfigError(
                        ConfigErrorKind.MALFORMED,
                        f"catch-all {part!r} must be the last segment of {pattern!r}",
                    )
                segments.append(PathSegment(SegmentKind.CATCH_ALL, name))
            else:
                segments.append(PathSegment(SegmentKind.PARAM, name))
        elif "{" in part or "}" in part or "<" in part or ">" in part:
            raise ConfigError(
                ConfigErrorKind.MALFORMED,
                f"unsupported parameter syntax {part!r} in {pattern!r}; use ':name'",
            )
        else:
            segments.append(PathSegment(SegmentKind.LITERAL, part))

    return tuple(segments)


def route_shape(segments: tuple[PathSegment, ...]) -> tuple[tuple[SegmentKind, str], ...]:
    """Normalize segments for conflict detection.

    Parameter names are collapsed, so ``/users/:id`` and ``/users/:userId``
    produce the same shape.
    """
    return tuple(
        (seg.kind, seg.value if seg.kind is SegmentKind.LITERAL else "")
        for seg in segments
    )


def normalize_pattern(segments: tuple[PathSegment, ...]) -> str:
    """Canonical string form of a parsed pattern."""
    return "/" + "/".join(str(seg) for seg in segments)
