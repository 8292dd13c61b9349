"""Buffer adapters: glue between a live text widget and the expansion engine.

Every widget technology gets one adapter with two capabilities: report the text
up to the caret, and replace a span as a single edit. ``handle_key`` is the shared
key-press handler; it decides synchronously and applies on the next loop turn.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, List, Optional, Protocol, Tuple

from .expansion import ExpansionEngine
from .logger import logger
from .models import Replacement

TRIGGER_KEY = "space"


class BufferPositionError(IndexError):
    """The requested span no longer exists in the buffer."""


class BufferAdapter(Protocol):
    def text_before_caret(self) -> Tuple[str, int]:
        """(text up to the caret, caret offset). Offsets are absolute in the buffer."""
        ...

    def replace(self, start: int, end: int, text: str) -> None:
        """Replace buffer[start:end] with text as one logical edit."""
        ...


class TextBuffer:
    """In-memory buffer with a caret; observers see one notification per edit."""

    def __init__(self, text: str = "", caret: Optional[int] = None):
        self.text = text
        self.caret = len(text) if caret is None else caret
        self.on_change: List[Callable[[str], None]] = []

    def text_before_caret(self) -> Tuple[str, int]:
        return self.text[:self.caret], self.caret

    def replace(self, start: int, end: int, text: str) -> None:
        if not 0 <= start <= end <= len(self.text):
            raise BufferPositionError(f"span [{start}, {end}) outside buffer of length {len(self.text)}")
        self.text = self.text[:start] + text + self.text[end:]
        self.caret = start + len(text)
        for observer in list(self.on_change):
            observer(self.text)

    def type(self, chars: str) -> None:
        """Insert at the caret (the widget's default key handling)."""
        self.replace(self.caret, self.caret, chars)


class DeferredQueue:
    """Minimal stand-in for a host event loop's call-soon queue."""

    def __init__(self):
        self._pending: Deque[Callable[[], None]] = deque()

    def call_soon(self, fn: Callable[[], None]) -> None:
        self._pending.append(fn)

    def run_pending(self) -> int:
        """Run callbacks queued so far; ones queued meanwhile wait for the next turn."""
        ran = 0
        for _ in range(len(self._pending)):
            self._pending.popleft()()
            ran += 1
        return ran

    def __len__(self) -> int:
        return len(self._pending)


def _apply(adapter: BufferAdapter, replacement: Replacement) -> None:
    try:
        adapter.replace(replacement.start, replacement.end, replacement.text)
    except (IndexError, ValueError) as e:
        # Buffer changed between decision and application; skip this expansion
        logger.debug(f"Dropped expansion of '{replacement.key}': {e}")


def handle_key(
    adapter: BufferAdapter,
    key: str,
    engine: ExpansionEngine,
    schedule: Callable[[Callable[[], None]], None],
    trigger_key: str = TRIGGER_KEY,
) -> bool:
    """Key-press hook. Returns True when the key's default insertion must be suppressed."""
    if key != trigger_key:
        return False
    text, caret = adapter.text_before_caret()
    replacement = engine.decide(text, caret)
    if replacement is None:
        return False
    # Never mutate the buffer whose event is being handled
    schedule(lambda: _apply(adapter, replacement))
    return True
