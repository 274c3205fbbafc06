"""Tests for switchyard.routing.pattern — path splitting and pattern compilation."""

import pytest

from switchyard.errors import ConfigurationError
from switchyard.routing.pattern import (
    compile_pattern,
    join_path,
    normalize_path,
    parse_path,
    split_path,
)
from switchyard.routing.route import SegmentKind


class TestSplitPath:
    def test_root_has_no_segments(self) -> None:
        assert split_path("/") == []
        assert split_path("") == []

    def test_segments(self) -> None:
        assert split_path("/user/alice/books") == ["user", "alice", "books"]

    def test_trailing_slash_keeps_empty_segment(self) -> None:
        assert split_path("/foo/") == ["foo", ""]

    def test_double_slash_keeps_empty_segment(self) -> None:
        assert split_path("/a//b") == ["a", "", "b"]


class TestNormalizePath:
    def test_folds_trailing_slash(self) -> None:
        assert normalize_path("/foo/") == "/foo"

    def test_folds_repeated_trailing_slashes(self) -> None:
        assert normalize_path("/foo//") == "/foo"

    def test_root_is_untouched(self) -> None:
        assert normalize_path("/") == "/"

    def test_strict_keeps_trailing_slash(self) -> None:
        assert normalize_path("/foo/", strict=True) == "/foo/"

    def test_adds_leading_slash(self) -> None:
        assert normalize_path("foo") == "/foo"
        assert normalize_path("") == "/"


class TestJoinPath:
    @pytest.mark.parametrize(
        ("prefix", "path", "expected"),
        [
            ("/api", "/list", "/api/list"),
            ("/api/", "/list", "/api/list"),
            ("/", "/list", "/list"),
            ("/api", "list", "/api/list"),
            ("", "/list", "/list"),
            ("/api", "", "/api"),
        ],
    )
    def test_one_slash_at_the_seam(self, prefix: str, path: str, expected: str) -> None:
        assert join_path(prefix, path) == expected


class TestParsePath:
    def test_static(self) -> None:
        segments = parse_path("/users")
        assert len(segments) == 1
        assert segments[0].kind is SegmentKind.STATIC
        assert segments[0].value == "users"
        assert segments[0].is_param is False

    def test_param(self) -> None:
        segments = parse_path("/user/:name/books/:title")
        assert [s.kind for s in segments] == [
            SegmentKind.STATIC,
            SegmentKind.PARAM,
            SegmentKind.STATIC,
            SegmentKind.PARAM,
        ]
        assert segments[1].name == "name"
        assert segments[3].name == "title"

    def test_optional(self) -> None:
        segments = parse_path("/user/:name?")
        assert segments[1].kind is SegmentKind.OPTIONAL
        assert segments[1].name == "name"
        assert segments[1].is_param is True

    def test_wildcard(self) -> None:
        segments = parse_path("/admin/*all")
        assert segments[1].kind is SegmentKind.WILDCARD
        assert segments[1].name == "all"

    def test_multiple_wildcards(self) -> None:
        segments = parse_path("/v1/*brand/shop/*name")
        wildcards = [s.name for s in segments if s.kind is SegmentKind.WILDCARD]
        assert wildcards == ["brand", "name"]

    def test_root(self) -> None:
        assert parse_path("/") == ()

    @pytest.mark.parametrize("path", ["/user/:", "/files/*", "/user/:?"])
    def test_rejects_empty_name(self, path: str) -> None:
        with pytest.raises(ConfigurationError, match="needs a parameter name"):
            parse_path(path)

    @pytest.mark.parametrize("path", ["/:id/:id", "/:id/*id", "/*rest/x/:rest?"])
    def test_rejects_duplicate_name(self, path: str) -> None:
        with pytest.raises(ConfigurationError, match="more than once"):
            parse_path(path)

    def test_rejects_optional_before_last(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_path("/user/:name?/books")
        assert "must be the last" in str(exc_info.value)
        assert "/user/:name?/books" in str(exc_info.value)


class TestCompilePattern:
    def test_param_names(self) -> None:
        segments, names = compile_pattern("/v1/*brand/shop/:id?")
        assert names == frozenset({"brand", "id"})
        assert len(segments) == 4

    def test_static_has_no_names(self) -> None:
        _, names = compile_pattern("/about/team")
        assert names == frozenset()

    def test_result_is_immutable(self) -> None:
        segments, names = compile_pattern("/user/:name")
        assert isinstance(segments, tuple)
        assert isinstance(names, frozenset)
