from __future__ import annotations

import itertools
import logging
import weakref
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

from pledge.logging import logger
from pledge.options import Options

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from pledge.promise import Promise

type UnhandledHandler = Callable[[int, BaseException], None]


@dataclass(frozen=True)
class PendingInfo:
    id: int
    name: str | None


class Runtime:
    """Context shared by a family of promises.

    A runtime hands out promise ids, keeps the optional registry of pending
    promises used for diagnostics, and owns the unhandled rejection channel
    that `Promise.done` reports to. Promises derived from one another always
    share the runtime of their source.
    """

    def __init__(self, options: Options | None = None) -> None:
        if options is not None and not isinstance(options, Options):
            msg = f"options must be `Options | None`, got {type(options).__name__}"
            raise TypeError(msg)

        self.options = options or Options()

        self._ids = itertools.count(1)
        self._pending: weakref.WeakValueDictionary[int, Promise[Any]] = weakref.WeakValueDictionary()
        self._subscribers: list[UnhandledHandler] = []
        self._tasks: deque[Callable[[], None]] = deque()
        self._draining = False

        # the logger is shared by every runtime, the previous level is restored on close
        self._previous_level: int | None = None
        if self.options.log_level != logging.NOTSET:
            self._previous_level = logger.level
            logger.setLevel(self.options.log_level)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> None:
        self.close()

    def next_id(self) -> int:
        return next(self._ids)

    def schedule(self, *tasks: Callable[[], None]) -> None:
        """Run `tasks` in order, after every task scheduled before them.

        The outermost call drains the queue before returning, so settling a
        promise still runs its handlers synchronously. A call made while the
        queue is draining only enqueues, which keeps the stack flat however
        long a chain of promises grows.
        """
        self._tasks.extend(tasks)
        if self._draining:
            return

        self._draining = True
        try:
            while self._tasks:
                self._tasks.popleft()()
        finally:
            self._draining = False

    # diagnostics

    def track(self, promise: Promise[Any]) -> None:
        if self.options.track_pending:
            self._pending[promise.id] = promise

    def untrack(self, promise: Promise[Any]) -> None:
        self._pending.pop(promise.id, None)

    def pending(self) -> tuple[PendingInfo, ...]:
        """Return a snapshot of the promises that are still pending.

        Always empty unless the runtime was created with `track_pending=True`.
        """
        return tuple(PendingInfo(p.id, p.name) for _, p in sorted(self._pending.items()))

    # unhandled rejections

    def subscribe(self, handler: UnhandledHandler) -> None:
        if not callable(handler):
            msg = f"handler must be `Callable`, got {type(handler).__name__}"
            raise TypeError(msg)
        self._subscribers.append(handler)

    def unsubscribe(self, handler: UnhandledHandler) -> None:
        try:
            self._subscribers.remove(handler)
        except ValueError:
            msg = "handler is not subscribed"
            raise ValueError(msg) from None

    def unhandled(self, promise_id: int, error: BaseException) -> None:
        if not self._subscribers:
            logger.warning("Unhandled rejection of promise %s: %r", promise_id, error)
            return

        for handler in list(self._subscribers):
            try:
                handler(promise_id, error)
            except Exception:
                logger.exception("Unhandled rejection subscriber %r failed for promise %s", handler, promise_id)

    def close(self) -> None:
        self._subscribers.clear()
        self._pending.clear()

        if self._previous_level is not None:
            logger.setLevel(self._previous_level)
            self._previous_level = None


_default: Runtime | None = None


def default() -> Runtime:
    """Return the process default runtime, creating it on first use."""
    global _default  # noqa: PLW0603
    if _default is None:
        _default = Runtime()
    return _default


def reset() -> None:
    global _default  # noqa: PLW0603
    if _default is not None:
        _default.close()
    _default = None
