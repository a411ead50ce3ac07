"""Cancellation contexts that propagate from parents to children."""

from __future__ import annotations

import threading


class Context:
    """A cancellation signal; canceling a context also cancels its children."""

    def __init__(self, parent: Context | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[Context] = []
        self._parent = parent
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: Context) -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
        child.cancel()

    def _forget(self, child: Context) -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def cancel(self) -> None:
        """Signal cancellation to this context and all of its children."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children, self._children = self._children, []
        for child in children:
            child.cancel()
        if self._parent is not None:
            self._parent._forget(self)

    def is_done(self) -> bool:
        """Whether the context has been canceled."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until canceled or ``timeout`` seconds pass; return whether canceled."""
        return self._event.wait(timeout)

    def child(self) -> Context:
        """A new context that is canceled along with this one."""
        return Context(self)


def background() -> Context:
    """A fresh root context that is never canceled unless asked to."""
    return Context()


def ignore_error_if_canceled(ctx: Context, err: BaseException | None) -> BaseException | None:
    """Return ``None`` when ``ctx`` is canceled, otherwise ``err`` unchanged."""
    if ctx.is_done():
        return None
    return err