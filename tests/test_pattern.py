"""Tests for caaspay.routing.pattern — pattern parsing and shapes."""

import pytest

from caaspay.errors import ConfigError, ConfigErrorKind
from caaspay.routing.pattern import (
    PathSegment,
    SegmentKind,
    normalize_pattern,
    parse_pattern,
    route_shape,
    split_path,
)


class TestSplitPath:
    def test_root(self) -> None:
        assert split_path("/") == []

    def test_ignores_trailing_and_double_slashes(self) -> None:
        assert split_path("//accounts//42/") == ["accounts", "42"]


class TestParsePattern:
    def test_literal(self) -> None:
        assert parse_pattern("/accounts") == (PathSegment(SegmentKind.LITERAL, "accounts"),)

    def test_param(self) -> None:
        segments = parse_pattern("/accounts/:id")
        assert segments[1] == PathSegment(SegmentKind.PARAM, "id")
        assert segments[1].is_param is True

    def test_catch_all(self) -> None:
        segments = parse_pattern("/files/*path")
        assert segments[-1] == PathSegment(SegmentKind.CATCH_ALL, "path")

    def test_root(self) -> None:
        assert parse_pattern("/") == ()

    def test_trailing_slash_is_ignored(self) -> None:
        assert parse_pattern("/accounts/") == parse_pattern("/accounts")

    @pytest.mark.parametrize(
        "pattern",
        [
            "accounts",
            "",
            "/accounts/:",
            "/accounts/:1abc",
            "/accounts/:id/x/:id",
            "/files/*path/more",
            "/users/{id}",
            "/share/<slug>",
        ],
    )
    def test_malformed(self, pattern: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            parse_pattern(pattern)
        assert exc_info.value.kind is ConfigErrorKind.MALFORMED

    def test_brace_syntax_hint(self) -> None:
        with pytest.raises(ConfigError, match="use ':name'"):
            parse_pattern("/users/{id}")


class TestShape:
    def test_param_names_collapse(self) -> None:
        assert route_shape(parse_pattern("/users/:id")) == route_shape(
            parse_pattern("/users/:userId")
        )

    def test_literal_differs_from_param(self) -> None:
        assert route_shape(parse_pattern("/users/me")) != route_shape(parse_pattern("/users/:id"))

    def test_param_differs_from_catch_all(self) -> None:
        assert route_shape(parse_pattern("/files/:name")) != route_shape(
            parse_pattern("/files/*rest")
        )

    def test_normalize(self) -> None:
        assert normalize_pattern(parse_pattern("//files//*path/")) == "/files/*path"
