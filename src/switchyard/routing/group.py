"""Route groups — hierarchical path prefixes with inherited middleware.

Groups live in a ``GroupTable`` owned by the app. A ``Group`` is only a
handle (table + index); parents are referenced by index, so the tree has
no back-references and lives exactly as long as the app that owns it.

Inheritance is computed, never written back: a child's prefix and
middleware are the ancestors' values (root first) followed by its own.
Routes capture those values when they are registered, so middleware added
to a group later does not reach routes that already exist.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from switchyard._internal.types import Handler
from switchyard.errors import ConfigurationError
from switchyard.routing.pattern import join_path

type Phase = Literal["before", "after"]

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


def check_phase(phase: str) -> None:
    if phase not in ("before", "after"):
        msg = f"Middleware phase must be 'before' or 'after', got {phase!r}."
        raise ConfigurationError(msg)


@dataclass(slots=True)
class _GroupRecord:
    prefix: str
    before: list[Callable[..., Any]] = field(default_factory=list)
    after: list[Callable[..., Any]] = field(default_factory=list)
    parent: int | None = None


class GroupTable:
    """Arena of group records addressed by integer index."""

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: list[_GroupRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def create(
        self,
        prefix: str,
        before: Sequence[Callable[..., Any]] = (),
        parent: int | None = None,
    ) -> int:
        """Add a group record and return its index."""
        if parent is not None and not 0 <= parent < len(self._records):
            msg = f"Unknown parent group {parent}."
            raise ConfigurationError(msg)
        self._records.append(_GroupRecord(prefix=prefix, before=list(before), parent=parent))
        return len(self._records) - 1

    def add_middleware(self, index: int, middleware: Callable[..., Any], phase: Phase) -> None:
        """Attach *middleware* to the group's own before or after list."""
        check_phase(phase)
        record = self._records[index]
        (record.before if phase == "before" else record.after).append(middleware)

    def lineage(self, index: int) -> list[int]:
        """Indices from the root ancestor down to *index*."""
        chain: list[int] = []
        current: int | None = index
        while current is not None:
            chain.append(current)
            current = self._records[current].parent
        chain.reverse()
        return chain

    def prefix(self, index: int) -> str:
        """Effective prefix: ancestor prefixes root-first, then the group's own."""
        path = ""
        for i in self.lineage(index):
            path = join_path(path, self._records[i].prefix)
        return path

    def before(self, index: int) -> tuple[Callable[..., Any], ...]:
        """Effective before-chain, root-first."""
        return tuple(mw for i in self.lineage(index) for mw in self._records[i].before)

    def after(self, index: int) -> tuple[Callable[..., Any], ...]:
        """Effective after-chain, root-first (same order as before-chains)."""
        return tuple(mw for i in self.lineage(index) for mw in self._records[i].after)

    def after_scopes(self, index: int) -> tuple[tuple[int, tuple[Callable[..., Any], ...]], ...]:
        """Each group's own after-chain, keyed by where its before-chain starts.

        The offset counts the before-middleware of all ancestors, so a
        request that halts at chain position *n* has entered exactly the
        groups whose offset is at most *n*.
        """
        scopes: list[tuple[int, tuple[Callable[..., Any], ...]]] = []
        offset = 0
        for i in self.lineage(index):
            record = self._records[i]
            if record.after:
                scopes.append((offset, tuple(record.after)))
            offset += len(record.before)
        return tuple(scopes)


class _Registrar(Protocol):
    def _check_not_frozen(self) -> None: ...

    def _register(
        self,
        methods: Sequence[str],
        path: str,
        middleware: Sequence[Callable[..., Any]],
        handler: Handler,
        *,
        group: int | None,
        name: str | None,
    ) -> None: ...


class RouteMethods:
    """HTTP-verb registration shared by ``App`` and ``Group``.

    ``get(path, *middleware, handler)`` registers directly; ``get(path)``
    returns a decorator::

        app.get("/user/:name", auth, show_user)

        @app.get("/health")
        def health(ctx):
            return ctx.text("ok")
    """

    __slots__ = ()

    def _target(self) -> tuple[_Registrar, int | None]:
        raise NotImplementedError

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] | None = None,
        middleware: Sequence[Callable[..., Any]] = (),
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL pattern. ``:name`` binds one segment, ``:name?`` an
                optional last segment, ``*name`` one or more segments.
            methods: HTTP methods. Defaults to ``["GET"]``.
            middleware: Route-level middleware, run after group middleware.
            name: Optional route name for introspection.
        """

        def decorator(func: Handler) -> Handler:
            registrar, group = self._target()
            registrar._register(
                [m.upper() for m in (methods or ["GET"])],
                path,
                middleware,
                func,
                group=group,
                name=name,
            )
            return func

        return decorator

    def _verb(self, methods: Sequence[str], path: str, chain: tuple[Callable[..., Any], ...]) -> Any:
        if not chain:
            return self.route(path, methods=methods)
        *middleware, handler = chain
        registrar, group = self._target()
        registrar._register(methods, path, middleware, handler, group=group, name=None)
        return handler

    def get(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["GET"], path, chain)

    def post(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["POST"], path, chain)

    def put(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["PUT"], path, chain)

    def patch(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["PATCH"], path, chain)

    def delete(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["DELETE"], path, chain)

    def head(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["HEAD"], path, chain)

    def options(self, path: str, *chain: Callable[..., Any]) -> Any:
        return self._verb(["OPTIONS"], path, chain)

    def all(self, path: str, *chain: Callable[..., Any]) -> Any:
        """Register the same chain for every standard HTTP method."""
        return self._verb(HTTP_METHODS, path, chain)


class Group(RouteMethods):
    """Handle to a group in the app's ``GroupTable``.

    Created by ``app.group()`` or ``group.group()``::

        api = app.group("/api", require_token)
        v1 = api.group("/v1")
        v1.get("/list", list_items)   # GET /api/v1/list, runs require_token first
    """

    __slots__ = ("_app", "_index", "_table")

    def __init__(self, app: _Registrar, table: GroupTable, index: int) -> None:
        self._app = app
        self._table = table
        self._index = index

    def _target(self) -> tuple[_Registrar, int | None]:
        return self._app, self._index

    @property
    def index(self) -> int:
        return self._index

    @property
    def prefix(self) -> str:
        """The effective prefix, including every ancestor's prefix."""
        return self._table.prefix(self._index)

    @property
    def before(self) -> tuple[Callable[..., Any], ...]:
        return self._table.before(self._index)

    @property
    def after(self) -> tuple[Callable[..., Any], ...]:
        return self._table.after(self._index)

    def group(self, prefix: str, *before: Callable[..., Any]) -> Group:
        """Create a child group inheriting this group's prefix and middleware."""
        self._app._check_not_frozen()
        return Group(self._app, self._table, self._table.create(prefix, before, self._index))

    def use(self, middleware: Callable[..., Any], phase: Phase = "before") -> Group:
        """Attach middleware to this group for routes registered from now on."""
        self._app._check_not_frozen()
        self._table.add_middleware(self._index, middleware, phase)
        return self

    def __repr__(self) -> str:
        return f"<Group {self.prefix!r}>"
