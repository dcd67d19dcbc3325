"""Mutable post text shared by the user and the upload coordinator.

The buffer is owned by a single compose session and mutated only from the
event loop thread that runs it. Placeholder operations never raise: a marker
the user has already edited away is a normal outcome, not an error.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

BufferListener = Callable[[str], None]


class CompositionBuffer:
    """The text of a post being composed.

    Args:
        text: Initial buffer content.
    """

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._listeners: list[BufferListener] = []

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        self._set(value)

    @property
    def is_blank(self) -> bool:
        """True when the buffer is empty or holds only whitespace."""
        return not self._text.strip()

    def __contains__(self, fragment: str) -> bool:
        return fragment in self._text

    def subscribe(self, listener: BufferListener) -> Callable[[], None]:
        """Call ``listener`` with the new text after every change.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def insert_placeholder(self, marker: str) -> str:
        """Append a newline and ``marker`` to the buffer.

        Returns:
            The buffer text right after the insertion.
        """
        self._set(f"{self._text}\n{marker}")
        return self._text

    def replace_placeholder(self, marker: str, replacement: str) -> bool:
        """Replace the first occurrence of ``marker`` with ``replacement``.

        Returns:
            False, leaving the buffer untouched, if the marker is gone.
        """
        if marker not in self._text:
            logger.debug("Placeholder %r no longer in buffer, nothing to replace", marker)
            return False
        self._set(self._text.replace(marker, replacement, 1))
        return True

    def remove_placeholder(self, marker: str) -> bool:
        """Remove the first occurrence of a newline followed by ``marker``.

        Returns:
            False, leaving the buffer untouched, if the marker is gone.
        """
        line = f"\n{marker}"
        if line not in self._text:
            logger.debug("Placeholder %r no longer in buffer, nothing to remove", marker)
            return False
        self._set(self._text.replace(line, "", 1))
        return True

    def _set(self, value: str) -> None:
        if value == self._text:
            return
        self._text = value
        for listener in list(self._listeners):
            listener(value)
