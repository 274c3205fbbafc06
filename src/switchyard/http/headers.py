"""Immutable, case-insensitive request headers.

Built once from the raw ASGI byte pairs; lookups go through a lowercase
index so per-request access never rescans the raw list.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``headers["Content-Type"]`` returns the first value for the name.
    ``get_list`` returns every value (e.g. repeated ``Accept`` lines).
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        index: dict[str, list[str]] = {}
        for name, value in raw:
            key = name.decode("latin-1").lower()
            index.setdefault(key, []).append(value.decode("latin-1"))
        self._raw = raw
        self._index = index

    @classmethod
    def from_dict(cls, values: Mapping[str, str]) -> Headers:
        """Build headers from a plain ``{name: value}`` mapping."""
        return cls(
            tuple(
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in values.items()
            )
        )

    def __getitem__(self, key: str) -> str:
        return self._index[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        first = {k: v[0] for k, v in self._index.items()}
        return f"Headers({first!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._index.get(key.lower())
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._index.get(key.lower(), ()))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Raw header byte pairs as received from ASGI."""
        return self._raw
