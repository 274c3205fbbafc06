"""Ordered route registry with first-match path matching.

Routes are kept per HTTP method in registration order. Matching walks the
candidates for the request method and returns the first one whose whole
pattern fits the request path. There is no specificity ranking: register
``/a/b`` before ``/a/*rest`` if ``/a/b`` should win.
"""

from dataclasses import dataclass

from switchyard.errors import NotFound
from switchyard.routing.pattern import split_path
from switchyard.routing.route import PathSegment, Route, RouteMatch, SegmentKind


@dataclass(frozen=True, slots=True)
class _Entry:
    """A registered route plus the minimum segment count each tail needs."""

    route: Route
    tails: tuple[int, ...]


def _required_tails(segments: tuple[PathSegment, ...]) -> tuple[int, ...]:
    """For each position, how many request segments the rest of the pattern needs."""
    tails = [0] * len(segments)
    needed = 0
    for i in range(len(segments) - 1, -1, -1):
        tails[i] = needed
        if segments[i].kind is not SegmentKind.OPTIONAL:
            needed += 1
    return tuple(tails)


def match_segments(
    segments: tuple[PathSegment, ...],
    parts: list[str],
    tails: tuple[int, ...] | None = None,
) -> dict[str, str | None] | None:
    """Match request *parts* against a compiled pattern.

    Returns the parameter bindings, or None when the pattern doesn't fit.
    Each wildcard takes the shortest run (at least one segment) that lets
    the rest of the pattern match, so a trailing wildcard takes everything
    that is left.

    Whether the rest of the pattern fits from a given position does not
    depend on earlier bindings, and a wildcard starting later can only
    end at positions a wildcard starting earlier already tried. So once
    a wildcard fails from position ``j``, every later start fails too.
    Recording that lowest failed start keeps matching roughly linear in
    the number of path segments per wildcard.
    """
    if tails is None:
        tails = _required_tails(segments)
    params: dict[str, str | None] = {}
    if _Matcher(segments, tails, parts, params).match(0, 0):
        return params
    return None


class _Matcher:
    __slots__ = ("failed_from", "params", "parts", "segments", "tails")

    def __init__(
        self,
        segments: tuple[PathSegment, ...],
        tails: tuple[int, ...],
        parts: list[str],
        params: dict[str, str | None],
    ) -> None:
        self.segments = segments
        self.tails = tails
        self.parts = parts
        self.params = params
        # wildcard position -> lowest request position it failed from
        self.failed_from: dict[int, int] = {}

    def match(self, i: int, j: int) -> bool:
        segments, parts, params = self.segments, self.parts, self.params
        if i == len(segments):
            return j == len(parts)

        seg = segments[i]
        remaining = len(parts) - j

        match seg.kind:
            case SegmentKind.STATIC:
                if remaining and parts[j] == seg.value:
                    return self.match(i + 1, j + 1)
                return False

            case SegmentKind.PARAM:
                if not remaining or not parts[j]:
                    return False
                params[seg.name] = parts[j]  # type: ignore[index]
                return self.match(i + 1, j + 1)

            case SegmentKind.OPTIONAL:
                if not remaining:
                    params[seg.name] = None  # type: ignore[index]
                    return self.match(i + 1, j)
                params[seg.name] = parts[j] or None  # type: ignore[index]
                return self.match(i + 1, j + 1)

            case SegmentKind.WILDCARD:
                return self._wildcard(i, j)

        return False

    def _wildcard(self, i: int, j: int) -> bool:
        segments, parts = self.segments, self.parts
        seg = segments[i]

        if i == len(segments) - 1:
            value = "/".join(parts[j:])
            if not value:
                return False
            self.params[seg.name] = value  # type: ignore[index]
            return True

        failed = self.failed_from.get(i)
        if failed is not None and j >= failed:
            return False

        # Ends beyond failed + 1 were already tried from the failed start.
        last = len(parts) - self.tails[i]
        if failed is not None:
            last = min(last, failed + 1)
        anchor = segments[i + 1].value if segments[i + 1].kind is SegmentKind.STATIC else None

        for end in range(j + 1, last + 1):
            if anchor is not None and (end == len(parts) or parts[end] != anchor):
                continue
            if end == j + 1 and not parts[j]:
                continue
            if self.match(i + 1, end):
                self.params[seg.name] = "/".join(parts[j:end])  # type: ignore[index]
                return True

        self.failed_from[i] = j
        return False


class Router:
    """Per-method route lists, matched in registration order.

    Usage::

        router = Router()
        router.add(route)
        router.compile()
        match = router.match("GET", "/user/alice")

    Built during single-threaded setup and read-only afterwards, so
    concurrent requests can match without locking.
    """

    __slots__ = ("_compiled", "_count", "_routes")

    def __init__(self) -> None:
        self._routes: dict[str, list[_Entry]] = {}
        self._compiled = False
        self._count = 0

    def add(self, route: Route) -> None:
        """Append a route to its method's list. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        entry = _Entry(route=route, tails=_required_tails(route.segments))
        self._routes.setdefault(route.method, []).append(entry)
        self._count += 1

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    @property
    def compiled(self) -> bool:
        return self._compiled

    def __len__(self) -> int:
        return self._count

    @property
    def routes(self) -> list[Route]:
        """All registered routes, ordered by registration index."""
        every = [entry.route for entries in self._routes.values() for entry in entries]
        return sorted(every, key=lambda route: route.index)

    def routes_for(self, method: str) -> list[Route]:
        """Routes registered for *method*, in registration order."""
        return [entry.route for entry in self._routes.get(method.upper(), ())]

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request method and path against the registered routes.

        Returns a ``RouteMatch`` for the first route that fits.
        Raises ``NotFound`` if no route for *method* matches *path*.
        """
        parts = split_path(path)
        for entry in self._routes.get(method.upper(), ()):
            params = match_segments(entry.route.segments, parts, entry.tails)
            if params is not None:
                return RouteMatch(route=entry.route, path_params=params)
        raise NotFound(f"No route matches {method} {path!r}")
