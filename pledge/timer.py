from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pledge import runtime as rt
from pledge.errors import PledgeCanceledError
from pledge.logging import logger
from pledge.models.time_data import TimeData
from pledge.promise import Promise

if TYPE_CHECKING:
    from collections.abc import Callable

    from pledge.runtime import Runtime


@dataclass
class PredicateWait:
    predicate: Callable[[TimeData], bool]
    time_started: float
    promise: Promise[None]
    time_data: TimeData = field(default_factory=TimeData)
    state: Literal["ACTIVE", "SETTLED", "CANCELED", "FAULTED"] = "ACTIVE"


class PromiseTimer:
    """Resolve promises once a condition over elapsed time holds.

    The timer has no clock of its own. Time only advances when `update` is
    called, typically once per frame or tick, and every active wait is
    re-evaluated on each call.
    """

    def __init__(self, *, runtime: Runtime | None = None) -> None:
        if runtime is not None and not isinstance(runtime, rt.Runtime):
            msg = f"runtime must be `Runtime | None`, got {type(runtime).__name__}"
            raise TypeError(msg)

        self.runtime = runtime or rt.default()
        self._time = 0.0
        self._waiting: list[PredicateWait] = []

    @property
    def time(self) -> float:
        return self._time

    @property
    def pending(self) -> int:
        return len(self._waiting)

    def wait_for(self, seconds: float) -> Promise[None]:
        if isinstance(seconds, bool) or not isinstance(seconds, int | float):
            msg = f"seconds must be `float`, got {type(seconds).__name__}"
            raise TypeError(msg)
        return self.wait_until(lambda t: t.elapsed_time >= seconds)

    def wait_while(self, predicate: Callable[[TimeData], bool]) -> Promise[None]:
        return self.wait_until(lambda t: not predicate(t))

    def wait_until(self, predicate: Callable[[TimeData], bool]) -> Promise[None]:
        if not callable(predicate):
            msg = f"predicate must be `Callable`, got {type(predicate).__name__}"
            raise TypeError(msg)

        promise = Promise[None](runtime=self.runtime)
        self._waiting.append(PredicateWait(predicate, self._time, promise))
        logger.debug("timer wait added for promise %s at %s", promise.id, self._time)
        return promise

    def update(self, delta_time: float) -> None:
        """Advance time by `delta_time` and settle every wait whose predicate holds.

        Waits are evaluated in the order they were added. A predicate that
        raises rejects its promise with the exception. Waits added while the
        update is running are first evaluated on the next update.
        """
        if isinstance(delta_time, bool) or not isinstance(delta_time, int | float):
            msg = f"delta_time must be `float`, got {type(delta_time).__name__}"
            raise TypeError(msg)
        if delta_time < 0:
            msg = "delta_time must be greater than or equal to zero"
            raise ValueError(msg)

        self._time += delta_time

        for wait in list(self._waiting):
            if wait.state != "ACTIVE":
                continue

            elapsed_time = self._time - wait.time_started
            wait.time_data.delta_time = elapsed_time - wait.time_data.elapsed_time
            wait.time_data.elapsed_time = elapsed_time
            wait.time_data.elapsed_updates += 1

            try:
                done = wait.predicate(wait.time_data)
            except Exception as e:
                self._remove(wait, "FAULTED")
                wait.promise.reject(e)
                continue

            if done:
                self._remove(wait, "SETTLED")
                wait.promise.resolve()

    def cancel(self, promise: Promise[None]) -> bool:
        for wait in self._waiting:
            if wait.promise is promise:
                self._remove(wait, "CANCELED")
                wait.promise.reject(PledgeCanceledError(promise.id))
                return True
        return False

    def _remove(self, wait: PredicateWait, state: Literal["SETTLED", "CANCELED", "FAULTED"]) -> None:
        wait.state = state
        self._waiting.remove(wait)
        logger.debug("timer wait for promise %s %s at %s", wait.promise.id, state.lower(), self._time)
