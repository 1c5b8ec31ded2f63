"""Text snippets and system-wide trigger expansion.

The expander consumes a stream of typed characters and focus changes. It
keeps its own rolling buffer and never touches clipboard history.
"""

import copy
import logging
import threading
from collections.abc import Callable
from typing import Protocol

from clipkeep.config import SNIPPET_BUFFER_LENGTH
from clipkeep.models import Snippet

logger = logging.getLogger(__name__)


class SnippetStore:
    def __init__(self):
        self._snippets: list[Snippet] = []
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _find(self, snippet_id: str) -> Snippet | None:
        for snippet in self._snippets:
            if snippet.id == snippet_id:
                return snippet
        return None

    def is_trigger_taken(self, trigger: str, excluding_id: str | None = None) -> bool:
        with self._lock:
            return any(s.trigger == trigger and s.id != excluding_id for s in self._snippets)

    def _check_trigger(self, trigger: str, excluding_id: str | None = None) -> None:
        if not trigger or any(ch.isspace() for ch in trigger):
            raise ValueError(f"invalid snippet trigger: {trigger!r}")
        if self.is_trigger_taken(trigger, excluding_id):
            raise ValueError(f"trigger already in use: {trigger!r}")

    def create(self, name: str, trigger: str, content: str, enabled: bool = True) -> Snippet:
        with self._lock:
            self._check_trigger(trigger)
            snippet = Snippet(name=name, trigger=trigger, content=content, enabled=enabled)
            self._snippets.append(snippet)
        self._notify()
        return copy.copy(snippet)

    def update(
        self,
        snippet_id: str,
        name: str | None = None,
        trigger: str | None = None,
        content: str | None = None,
        enabled: bool | None = None,
    ) -> bool:
        with self._lock:
            snippet = self._find(snippet_id)
            if snippet is None:
                return False
            if trigger is not None:
                self._check_trigger(trigger, excluding_id=snippet_id)
                snippet.trigger = trigger
            if name is not None:
                snippet.name = name
            if content is not None:
                snippet.content = content
            if enabled is not None:
                snippet.enabled = enabled
        self._notify()
        return True

    def toggle(self, snippet_id: str) -> bool:
        with self._lock:
            snippet = self._find(snippet_id)
            if snippet is None:
                return False
            snippet.enabled = not snippet.enabled
        self._notify()
        return True

    def delete(self, snippet_id: str) -> bool:
        with self._lock:
            snippet = self._find(snippet_id)
            if snippet is None:
                return False
            self._snippets.remove(snippet)
        self._notify()
        return True

    def get(self, snippet_id: str) -> Snippet | None:
        with self._lock:
            snippet = self._find(snippet_id)
            return copy.copy(snippet) if snippet else None

    def snippets(self) -> list[Snippet]:
        with self._lock:
            return [copy.copy(s) for s in self._snippets]

    def enabled(self) -> list[Snippet]:
        with self._lock:
            return [copy.copy(s) for s in self._snippets if s.enabled]

    def load(self, snippets: list[Snippet]) -> None:
        with self._lock:
            self._snippets = [copy.copy(s) for s in snippets]


class Typist(Protocol):
    def delete(self, count: int) -> None: ...

    def type_text(self, text: str) -> None: ...


class SnippetExpander:
    """Match typed characters against enabled snippet triggers.

    The buffer only ever holds the longest typed suffix that could still grow
    into a trigger, so a keystroke that cannot continue any partial match
    empties it.
    """

    def __init__(self, snippets: SnippetStore, typist: Typist, buffer_length: int = SNIPPET_BUFFER_LENGTH):
        self._snippets = snippets
        self._typist = typist
        self._buffer_length = buffer_length
        self._buffer = ""
        self._lock = threading.Lock()

    @property
    def buffer(self) -> str:
        return self._buffer

    def reset(self) -> None:
        with self._lock:
            self._buffer = ""

    def feed(self, char: str) -> Snippet | None:
        """Handle one typed character, expanding a snippet if a trigger completes."""
        with self._lock:
            triggers = self._snippets.enabled()
            buffer = (self._buffer + char)[-self._buffer_length:]

            for snippet in triggers:
                if buffer.endswith(snippet.trigger):
                    self._buffer = ""
                    break
            else:
                self._buffer = self._longest_partial(buffer, triggers)
                return None

        logger.info("Expanding snippet %r", snippet.name or snippet.trigger)
        try:
            self._typist.delete(len(snippet.trigger))
            self._typist.type_text(snippet.content)
        except Exception:
            logger.exception("Error expanding snippet %r", snippet.trigger)
        return snippet

    @staticmethod
    def _longest_partial(buffer: str, triggers: list[Snippet]) -> str:
        for start in range(len(buffer)):
            suffix = buffer[start:]
            if any(s.trigger.startswith(suffix) for s in triggers):
                return suffix
        return ""


class PynputTypist:
    """Synthesize backspaces and text into the focused application."""

    def __init__(self):
        from pynput.keyboard import Controller

        self._controller = Controller()

    def delete(self, count: int) -> None:
        from pynput.keyboard import Key

        for _ in range(count):
            self._controller.press(Key.backspace)
            self._controller.release(Key.backspace)

    def type_text(self, text: str) -> None:
        self._controller.type(text)


class KeyboardWatcher:
    """Feed global keystrokes from pynput into a SnippetExpander.

    Mouse clicks are taken as focus changes. Events we synthesize ourselves
    are ignored.
    """

    def __init__(self, expander: SnippetExpander):
        self._expander = expander
        self._keyboard_listener = None
        self._mouse_listener = None
        self._modifiers: set = set()

    def start(self) -> None:
        if self._keyboard_listener is not None:
            return
        from pynput import keyboard as pynput_kb, mouse as pynput_mouse

        self._keyboard_listener = pynput_kb.Listener(on_press=self._on_press, on_release=self._on_release)
        self._mouse_listener = pynput_mouse.Listener(on_click=self._on_click)
        self._keyboard_listener.start()
        self._mouse_listener.start()
        logger.info("Snippet expansion started")

    def stop(self) -> None:
        for listener in (self._keyboard_listener, self._mouse_listener):
            if listener is not None:
                listener.stop()
        self._keyboard_listener = None
        self._mouse_listener = None
        self._expander.reset()

    def _on_press(self, key, injected: bool = False) -> None:
        if injected:
            return
        from pynput.keyboard import Key

        if key in (Key.cmd, Key.cmd_r, Key.ctrl, Key.ctrl_r, Key.alt, Key.alt_r):
            self._modifiers.add(key)
            self._expander.reset()
            return
        if self._modifiers:
            return
        char = getattr(key, "char", None)
        if char:
            self._expander.feed(char)
        elif key == Key.space:
            self._expander.feed(" ")
        elif key in (Key.shift, Key.shift_r, Key.caps_lock):
            return
        else:
            self._expander.reset()

    def _on_release(self, key, injected: bool = False) -> None:
        self._modifiers.discard(key)

    def _on_click(self, x, y, button, pressed, injected: bool = False) -> None:
        if pressed:
            self._expander.reset()
