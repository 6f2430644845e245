"""Compiled route table with trie-based path matching.

A ``RouteTable`` is built once per snapshot by ``RouteTable.compile`` and
never modified afterwards. Conflicting definitions fail compilation, so
every request path resolves to at most one route per method.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from caaspay.errors import ConfigError, ConfigErrorKind, MethodNotAllowed, NotFound, RouteConflict
from caaspay.routing.pattern import SegmentKind, split_path
from caaspay.routing.route import RouteDefinition, RouteMatch

HTTP_METHODS: frozenset[str] = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"}
)


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "children", "param_child", "routes_by_method")

    def __init__(self) -> None:
        # Literal segment children: "accounts" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child, shared by every ":name" at this depth
        self.param_child: _TrieNode | None = None
        # Catch-all routes ("*name") hanging off this node, keyed by method
        self.catch_all: dict[str, RouteDefinition] = {}
        # Routes terminating at this node, keyed by method
        self.routes_by_method: dict[str, RouteDefinition] = {}


class RouteTable:
    """Compiled, immutable route table.

    Usage::

        table = RouteTable.compile([
            RouteDefinition("GET", "/accounts/:id", "get_account"),
            RouteDefinition("GET", "/accounts/me", "get_own_account"),
        ])
        match = table.match("GET", "/accounts/42")
        match.path_params  # {"id": "42"}

    Matching is per method and most-specific-first: at every position a
    literal segment beats a parameter, which beats a catch-all. When a
    more specific branch dead-ends the matcher backtracks.
    """

    __slots__ = ("_methods", "_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._routes: tuple[RouteDefinition, ...] = ()
        self._methods: frozenset[str] = frozenset()

    # -- Compilation --

    @classmethod
    def compile(cls, definitions: Iterable[RouteDefinition]) -> RouteTable:
        """Build a table from route definitions.

        Raises ``RouteConflict`` if two definitions share a method and a
        normalized shape, and ``ConfigError`` for unknown methods. No table
        is produced on failure.
        """
        table = cls()
        seen: dict[tuple, RouteDefinition] = {}
        routes: list[RouteDefinition] = []

        for definition in definitions:
            if definition.method not in HTTP_METHODS:
                raise ConfigError(
                    ConfigErrorKind.MALFORMED,
                    f"unknown HTTP method {definition.method!r}",
                    source="routes.yaml",
                )
            previous = seen.get(definition.shape)
            if previous is not None:
                raise RouteConflict(definition.method, previous.pattern, definition.pattern)
            seen[definition.shape] = definition
            table._insert(definition)
            routes.append(definition)

        table._routes = tuple(routes)
        table._methods = frozenset(route.method for route in routes)
        return table

    def _insert(self, definition: RouteDefinition) -> None:
        node = self._root
        for seg in definition.segments:
            if seg.kind is SegmentKind.CATCH_ALL:
                node.catch_all[definition.method] = definition
                return
            if seg.kind is SegmentKind.PARAM:
                if node.param_child is None:
                    node.param_child = _TrieNode()
                node = node.param_child
            else:
                node = node.children.setdefault(seg.value, _TrieNode())
        node.routes_by_method[definition.method] = definition

    # -- Introspection --

    @property
    def routes(self) -> tuple[RouteDefinition, ...]:
        """All compiled routes, in declaration order."""
        return self._routes

    @property
    def methods(self) -> frozenset[str]:
        """Methods with at least one route."""
        return self._methods

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[RouteDefinition]:
        return iter(self._routes)

    def __repr__(self) -> str:
        return f"<RouteTable routes={len(self._routes)}>"

    # -- Matching --

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request method and path.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route matches the path under any method.
        Raises ``MethodNotAllowed`` if the path matches only other methods.
        """
        method = method.upper()
        parts = split_path(path)

        route = self._find(self._root, parts, 0, method)
        if route is not None:
            return RouteMatch(route=route, path_params=_extract_params(route, parts))

        allowed = self.methods_for(path)
        if allowed:
            raise MethodNotAllowed(allowed)
        raise NotFound(f"No route matches {method} {path!r}")

    def methods_for(self, path: str) -> frozenset[str]:
        """Every method under which *path* resolves to a route."""
        parts = split_path(path)
        return frozenset(
            method for method in self._methods if self._find(self._root, parts, 0, method)
        )

    def _find(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        method: str,
    ) -> RouteDefinition | None:
        """Depth-first search, literal edges before parameter edges."""
        if index == len(parts):
            return node.routes_by_method.get(method)

        child = node.children.get(parts[index])
        if child is not None:
            found = self._find(child, parts, index + 1, method)
            if found is not None:
                return found

        if node.param_child is not None:
            found = self._find(node.param_child, parts, index + 1, method)
            if found is not None:
                return found

        return node.catch_all.get(method)


def _extract_params(route: RouteDefinition, parts: list[str]) -> dict[str, str]:
    """Read parameter values off the concrete path using the route's own names."""
    params: dict[str, str] = {}
    for position, seg in enumerate(route.segments):
        if seg.kind is SegmentKind.PARAM:
            params[seg.value] = parts[position]
        elif seg.kind is SegmentKind.CATCH_ALL:
            params[seg.value] = "/".join(parts[position:])
    return params
