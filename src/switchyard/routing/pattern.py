"""Route pattern compiler.

Turns a path such as ``/v1/*brand/shop/:id?`` into an ordered tuple of
typed segments. Patterns are compiled once, when the route is registered,
so malformed patterns fail at startup rather than per request.
"""

from switchyard.errors import ConfigurationError
from switchyard.routing.route import PathSegment, SegmentKind


def split_path(path: str) -> list[str]:
    """Split a path into its segments.

    ``"/"`` has no segments. Empty segments are kept, so ``"/foo/"``
    is ``["foo", ""]`` and stays distinct from ``"/foo"``.
    """
    if path in ("", "/"):
        return []
    return path.removeprefix("/").split("/")


def join_path(prefix: str, path: str) -> str:
    """Join a group prefix and a path with exactly one slash at the seam.

    ``join_path("/api/", "/x")`` and ``join_path("/", "/x")`` give
    ``"/api/x"`` and ``"/x"``.
    """
    if not prefix:
        return path
    if not path:
        return prefix
    return prefix.rstrip("/") + "/" + path.lstrip("/")


def normalize_path(path: str, *, strict: bool = False) -> str:
    """Fold a trailing slash away unless routing is strict.

    The root path is never folded.
    """
    if not path.startswith("/"):
        path = f"/{path}"
    if strict or path == "/":
        return path
    return path.rstrip("/") or "/"


def parse_path(path: str) -> tuple[PathSegment, ...]:
    """Parse a route path string into segments.

    Examples::

        "/users"            -> (STATIC "users",)
        "/users/:id"        -> (STATIC "users", PARAM id)
        "/users/:id?"       -> (STATIC "users", OPTIONAL id)
        "/admin/*all"       -> (STATIC "admin", WILDCARD all)

    Raises ``ConfigurationError`` for empty or duplicate parameter names
    and for an optional segment that is not the last one.
    """
    parts = split_path(path)
    segments: list[PathSegment] = []
    seen: set[str] = set()

    for position, part in enumerate(parts):
        if part.startswith(":"):
            name = part[1:]
            kind = SegmentKind.PARAM
            if name.endswith("?"):
                name = name[:-1]
                kind = SegmentKind.OPTIONAL
        elif part.startswith("*"):
            name = part[1:]
            kind = SegmentKind.WILDCARD
        else:
            segments.append(PathSegment(SegmentKind.STATIC, part))
            continue

        if not name:
            msg = f"Route {path!r}: segment {part!r} needs a parameter name."
            raise ConfigurationError(msg)
        if name in seen:
            msg = f"Route {path!r}: parameter {name!r} is declared more than once."
            raise ConfigurationError(msg)
        if kind is SegmentKind.OPTIONAL and position != len(parts) - 1:
            msg = (
                f"Route {path!r}: optional segment {part!r} must be the last "
                "segment of the pattern."
            )
            raise ConfigurationError(msg)

        seen.add(name)
        segments.append(PathSegment(kind, part, name))

    return tuple(segments)


def compile_pattern(path: str) -> tuple[tuple[PathSegment, ...], frozenset[str]]:
    """Compile *path* into its segments and the set of parameter names."""
    segments = parse_path(path)
    names = frozenset(seg.name for seg in segments if seg.name is not None)
    return segments, names
