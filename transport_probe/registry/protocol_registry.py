"""Ordered registry of candidate transport names."""

from collections.abc import Iterable, Iterator

DEFAULT_TRANSPORTS = (
    "websocket",
    "xhr-streaming",
    "xdr-streaming",
    "iframe-eventsource",
    "iframe-htmlfile",
    "xhr-polling",
    "xdr-polling",
    "iframe-xhr-polling",
    "jsonp-polling",
)


class ProtocolRegistry:
    """
    Ordered, duplicate-free set of transport names.

    Names are opaque: the registry only compares them for equality.
    """

    def __init__(self, names: Iterable[str] = DEFAULT_TRANSPORTS):
        self._names: list[str] = []
        seen = set()

        for name in names:
            if not isinstance(name, str) or not name:
                raise ValueError(f"Invalid transport name: {name!r}")
            if name in seen:
                raise ValueError(f"Duplicate transport name: {name!r}")
            seen.add(name)
            self._names.append(name)

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def filter(self, selected: Iterable[str]) -> list[str]:
        """Return the members of selected, in registry order."""
        wanted = set(selected)
        return [name for name in self._names if name in wanted]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __repr__(self) -> str:
        return f"ProtocolRegistry({self._names!r})"
