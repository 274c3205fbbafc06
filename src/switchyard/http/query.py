"""Immutable query string parameters."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """Parsed query string.

    ``params["page"]`` returns the first value for a key; ``get_list``
    returns all of them. The raw bytes stay available for URL rebuilding.
    """

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self._raw = query_string
        self._data: dict[str, list[str]] = parse_qs(
            query_string.decode("latin-1"), keep_blank_values=True
        )

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        first = {k: v[0] for k, v in self._data.items()}
        return f"QueryParams({first!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, ()))

    @property
    def raw(self) -> bytes:
        """The undecoded query string."""
        return self._raw
