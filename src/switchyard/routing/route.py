"""Route, PathSegment and RouteMatch frozen dataclasses."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class SegmentKind(Enum):
    """What a compiled pattern segment matches."""

    STATIC = "static"
    PARAM = "param"
    OPTIONAL = "optional"
    WILDCARD = "wildcard"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """One slash-delimited unit of a compiled route pattern.

    Static:   ``users``   (kind=STATIC, value="users")
    Param:    ``:id``     (kind=PARAM, name="id")
    Optional: ``:id?``    (kind=OPTIONAL, name="id")
    Wildcard: ``*rest``   (kind=WILDCARD, name="rest")
    """

    kind: SegmentKind
    value: str
    name: str | None = None

    @property
    def is_param(self) -> bool:
        return self.kind is not SegmentKind.STATIC


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route. Immutable once registered.

    ``before`` and ``after`` are the group middleware captured when the
    route was registered; ``chain`` is the full execution list.
    ``after_scopes`` splits ``after`` per group as ``(offset, middleware)``,
    where *offset* is the position in ``before`` at which that group's
    own before-middleware starts.
    """

    method: str
    path: str
    segments: tuple[PathSegment, ...]
    param_names: frozenset[str]
    handler: Callable[..., Any]
    before: tuple[Callable[..., Any], ...] = ()
    after: tuple[Callable[..., Any], ...] = ()
    index: int = 0
    name: str | None = None
    handler_arity: int = 2
    after_scopes: tuple[tuple[int, tuple[Callable[..., Any], ...]], ...] = ()

    @property
    def chain(self) -> tuple[Callable[..., Any], ...]:
        return (*self.before, self.handler, *self.after)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match.

    Optional parameters that had no segment to bind map to ``None``.
    """

    route: Route
    path_params: dict[str, str | None]
