"""Append-only operator output and verdict rendering."""

from collections.abc import Callable

from transport_probe.probing.verdict import Verdict

LineListener = Callable[[str], None]
ClearListener = Callable[[], None]


class OutputLog:
    """Human-readable lines for the operator, oldest first."""

    def __init__(self, max_lines: int | None = None):
        self.max_lines = max_lines
        self._lines: list[str] = []
        self._listeners: list[LineListener] = []
        self._clear_listeners: list[ClearListener] = []

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def append(self, line: str) -> None:
        self._lines.append(line)
        if self.max_lines is not None and len(self._lines) > self.max_lines:
            del self._lines[: len(self._lines) - self.max_lines]

        for listener in list(self._listeners):
            listener(line)

    def clear(self) -> None:
        """Drop every line and tell clear listeners to wipe their view."""
        self._lines.clear()
        for listener in list(self._clear_listeners):
            listener()

    def subscribe(self, listener: LineListener) -> None:
        self._listeners.append(listener)

    def subscribe_clear(self, listener: ClearListener) -> None:
        self._clear_listeners.append(listener)

    def __len__(self) -> int:
        return len(self._lines)


def render_verdicts(snapshot: dict[str, Verdict]) -> list[str]:
    """One aligned line per transport, e.g. ``xhr-polling    succeeded``."""
    if not snapshot:
        return []

    width = max(len(name) for name in snapshot)
    return [f"{name.ljust(width)}  {verdict.label}" for name, verdict in snapshot.items()]
