"""Routing — compiled, conflict-checked route table with O(path-depth) matching.

Route definitions come from ``routes.yaml`` and are compiled into an
immutable lookup structure owned by a single snapshot.
"""

from caaspay.routing.pattern import PathSegment, SegmentKind, parse_pattern, route_shape
from caaspay.routing.route import RouteDefinition, RouteMatch
from caaspay.routing.table import HTTP_METHODS, RouteTable

__all__ = [
    "HTTP_METHODS",
    "PathSegment",
    "RouteDefinition",
    "RouteMatch",
    "RouteTable",
    "SegmentKind",
    "parse_pattern",
    "route_shape",
]
