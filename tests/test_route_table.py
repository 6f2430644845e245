"""Tests for caaspay.routing.table — compiled route table."""

import pytest

from caaspay.errors import (
    ConfigError,
    ConfigErrorKind,
    MethodNotAllowed,
    NotFound,
    RouteConflict,
)
from caaspay.routing.route import RouteDefinition
from caaspay.routing.table import RouteTable


def _route(pattern: str, method: str = "GET", handler: str = "h") -> RouteDefinition:
    return RouteDefinition(method=method, pattern=pattern, handler_name=handler)


def _table(*routes: RouteDefinition) -> RouteTable:
    return RouteTable.compile(routes)


class TestCompile:
    def test_empty(self) -> None:
        table = _table()
        assert len(table) == 0
        with pytest.raises(NotFound):
            table.match("GET", "/")

    def test_routes_in_declaration_order(self) -> None:
        a, b = _route("/b"), _route("/a")
        assert _table(a, b).routes == (a, b)

    def test_methods(self) -> None:
        table = _table(_route("/a"), _route("/a", "POST"))
        assert table.methods == frozenset({"GET", "POST"})

    def test_conflict_on_same_shape(self) -> None:
        with pytest.raises(RouteConflict) as exc_info:
            _table(_route("/users/:id"), _route("/users/:userId"))
        err = exc_info.value
        assert err.kind is ConfigErrorKind.DUPLICATE_ROUTE
        assert err.method == "GET"
        assert err.pattern_a == "/users/:id"
        assert err.pattern_b == "/users/:userId"

    def test_conflict_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            _table(_route("/a"), _route("/a/"))

    def test_same_shape_different_methods_ok(self) -> None:
        table = _table(_route("/users/:id"), _route("/users/:uid", "DELETE"))
        assert len(table) == 2

    def test_literal_and_param_do_not_conflict(self) -> None:
        table = _table(_route("/users/:id"), _route("/users/me"))
        assert len(table) == 2

    def test_unknown_method(self) -> None:
        with pytest.raises(ConfigError, match="unknown HTTP method"):
            _table(_route("/a", "FETCH"))


class TestMatch:
    def test_root(self) -> None:
        match = _table(_route("/")).match("GET", "/")
        assert match.path_params == {}

    def test_param_extraction(self) -> None:
        match = _table(_route("/accounts/:id/payments/:payment")).match(
            "GET", "/accounts/42/payments/p-7"
        )
        assert match.path_params == {"id": "42", "payment": "p-7"}

    def test_trailing_slash_matches(self) -> None:
        match = _table(_route("/accounts/:id")).match("GET", "/accounts/42/")
        assert match.path_params == {"id": "42"}

    def test_method_is_case_insensitive(self) -> None:
        route = _route("/a")
        assert _table(route).match("get", "/a").route is route

    def test_literal_beats_param(self) -> None:
        me = _route("/users/me", handler="me")
        by_id = _route("/users/:id", handler="by_id")
        table = _table(by_id, me)
        assert table.match("GET", "/users/me").route is me
        assert table.match("GET", "/users/42").route is by_id

    def test_param_beats_catch_all(self) -> None:
        one = _route("/files/:name", handler="one")
        rest = _route("/files/*path", handler="rest")
        table = _table(rest, one)
        assert table.match("GET", "/files/a.txt").route is one
        match = table.match("GET", "/files/a/b/c.txt")
        assert match.route is rest
        assert match.path_params == {"path": "a/b/c.txt"}

    def test_backtracks_from_dead_literal_branch(self) -> None:
        deep = _route("/users/me/settings", handler="settings")
        profile = _route("/users/:id/profile", handler="profile")
        table = _table(deep, profile)
        match = table.match("GET", "/users/me/profile")
        assert match.route is profile
        assert match.path_params == {"id": "me"}

    def test_params_named_per_route(self) -> None:
        get = _route("/users/:id")
        delete = _route("/users/:user_id", "DELETE")
        table = _table(get, delete)
        assert table.match("GET", "/users/7").path_params == {"id": "7"}
        assert table.match("DELETE", "/users/7").path_params == {"user_id": "7"}

    def test_catch_all_needs_a_segment(self) -> None:
        table = _table(_route("/files/*path"))
        with pytest.raises(NotFound):
            table.match("GET", "/files")

    def test_param_does_not_span_segments(self) -> None:
        table = _table(_route("/accounts/:id"))
        with pytest.raises(NotFound):
            table.match("GET", "/accounts/42/extra")


class TestNotFoundVersusMethodNotAllowed:
    def test_404_when_no_pattern_matches(self) -> None:
        table = _table(_route("/accounts/:id"))
        with pytest.raises(NotFound):
            table.match("GET", "/nope")

    def test_405_when_other_method_matches(self) -> None:
        table = _table(_route("/accounts/:id", "POST"), _route("/accounts/:id", "PUT"))
        with pytest.raises(MethodNotAllowed) as exc_info:
            table.match("GET", "/accounts/42")
        assert exc_info.value.status == 405
        assert ("Allow", "POST, PUT") in exc_info.value.headers

    def test_405_not_raised_when_get_matches_elsewhere(self) -> None:
        """A literal node owned by POST must not hide a GET param route."""
        post_me = _route("/users/me", "POST")
        get_id = _route("/users/:id")
        table = _table(post_me, get_id)
        assert table.match("GET", "/users/me").route is get_id

    def test_methods_for(self) -> None:
        table = _table(_route("/a"), _route("/a", "DELETE"), _route("/b", "POST"))
        assert table.methods_for("/a") == frozenset({"GET", "DELETE"})
        assert table.methods_for("/zzz") == frozenset()
