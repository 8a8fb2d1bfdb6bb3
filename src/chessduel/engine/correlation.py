"""Request/response correlation over a line-oriented engine channel.

Every outstanding request registers a single-use listener: a predicate that
recognises its reply line and a completion callback.  An incoming line is
routed to the oldest listener whose predicate matches; that listener is
removed before its callback runs.  Lines nobody waits for are reported back
to the caller as unmatched.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from itertools import count

LinePredicate = Callable[[str], bool]
LineHandler = Callable[[str], None]


def first_token_is(token: str) -> LinePredicate:
    """Predicate matching lines whose first whitespace-separated token is *token*."""

    def _matches(line: str) -> bool:
        parts = line.split(maxsplit=1)
        return bool(parts) and parts[0] == token

    return _matches


@dataclass(slots=True)
class _Listener:
    ticket: int
    predicate: LinePredicate
    on_match: LineHandler


class ResponseRegistry:
    """Ordered table of single-use reply listeners."""

    __slots__ = ("_listeners", "_tickets")

    def __init__(self) -> None:
        self._listeners: list[_Listener] = []
        self._tickets = count(1)

    def expect(self, predicate: LinePredicate, on_match: LineHandler) -> int:
        """Register a listener and return its ticket."""
        ticket = next(self._tickets)
        self._listeners.append(_Listener(ticket, predicate, on_match))
        return ticket

    def cancel(self, ticket: int) -> bool:
        """Drop the listener for *ticket* without calling it."""
        for index, listener in enumerate(self._listeners):
            if listener.ticket == ticket:
                del self._listeners[index]
                return True
        return False

    def dispatch(self, line: str) -> bool:
        """Route *line* to at most one listener. Returns True if one matched."""
        for index, listener in enumerate(self._listeners):
            if listener.predicate(line):
                del self._listeners[index]
                listener.on_match(line)
                return True
        return False

    def clear(self) -> None:
        self._listeners.clear()

    def is_pending(self, ticket: int) -> bool:
        return any(listener.ticket == ticket for listener in self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)
