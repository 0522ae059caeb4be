"""Case-insensitive, multi-valued HTTP header container."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Union

from multidict import CIMultiDict, MultiMapping

HeaderValues = Union[str, list[str], tuple[str, ...], None]
HeaderSource = Union["HeaderMultimap", MultiMapping, Mapping[str, HeaderValues], Iterable[tuple[str, str]], None]


class HeaderMultimap:
    """
    Header multimap shared by the pipeline and every adapter.

    Lookups and removals ignore case. Distinct names keep the order (and
    casing) of their first insertion when enumerated.

    Example:
        headers = HeaderMultimap({"Content-Type": "text/html"})
        headers.append("Vary", "Accept-Encoding")
        headers.get("content-type")  # "text/html"
    """

    def __init__(self, source: HeaderSource = None) -> None:
        self._data: CIMultiDict[str] = CIMultiDict()
        if source is None:
            return

        if isinstance(source, HeaderMultimap):
            self._data.extend(source._data)
        elif isinstance(source, MultiMapping):
            self._data.extend(source)
        elif isinstance(source, Mapping):
            for name, value in source.items():
                if value is None:
                    continue
                if isinstance(value, (list, tuple)):
                    for item in value:
                        self._data.add(name, str(item))
                else:
                    self._data.add(name, str(value))
        else:
            for name, value in source:
                self._data.add(name, str(value))

    def set(self, name: str, value: str) -> None:
        """Replace every value of ``name`` with ``value``."""
        self._data[name] = value

    def append(self, name: str, value: str) -> None:
        """Add ``value`` after any existing values of ``name``."""
        self._data.add(name, value)

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of ``name``."""
        return self._data.get(name, default)

    def get_all(self, name: str) -> list[str]:
        return self._data.getall(name, [])

    def get_combined(self, name: str) -> str | None:
        """Return every value of ``name`` joined with ``", "``, or None if absent."""
        values = self.get_all(name)
        if not values:
            return None
        return ", ".join(values)

    def remove(self, name: str) -> None:
        self._data.popall(name, None)

    def names(self) -> list[str]:
        seen: set[str] = set()
        ordered: list[str] = []
        for name in self._data.keys():
            key = name.lower()
            if key in seen:
                continue
            seen.add(key)
            ordered.append(str(name))
        return ordered

    def items(self) -> list[tuple[str, str]]:
        """Return every (name, value) pair, duplicates included."""
        return [(str(name), value) for name, value in self._data.items()]

    def copy(self) -> HeaderMultimap:
        return HeaderMultimap(self)

    def to_multidict(self) -> CIMultiDict[str]:
        return self._data.copy()

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self.names())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, HeaderMultimap):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"HeaderMultimap({self.items()!r})"
