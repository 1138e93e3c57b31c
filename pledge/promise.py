from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pledge import runtime as rt
from pledge.errors import PledgeStateError
from pledge.logging import logger
from pledge.models.result import Ko, Ok, Result

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pledge.runtime import Runtime

type State = Literal["PENDING", "RESOLVED", "REJECTED"]


@dataclass
class Handler[A]:
    callback: Callable[[A], Any]
    rejectable: Promise[Any]


class Promise[T]:
    """A deferred result that is settled exactly once.

    A promise starts out pending and is settled by whoever holds it, either
    with `resolve` or with `reject`. Consumers attach handlers with `then`,
    `catch`, `finally_`, `continue_with` and `done`, before or after the
    promise settles. Handlers run in registration order before the outermost
    settling call returns, or on registration if the promise is already
    settled. Handlers triggered from inside another handler are queued on the
    runtime and run once it returns, so chains of any length keep a flat stack.

    Every handler is paired with the promise derived from it. A handler that
    raises rejects its own derived promise; the exception never escapes the
    call that settled the source.

    Example:
        Settling a promise and chaining on its value::

            p = Promise[int]()
            p.then(lambda v: v * 2).done(print)
            p.resolve(21)  # prints 42

    """

    def __init__(
        self,
        resolver: Callable[[Callable[[T], None], Callable[[BaseException], None]], Any] | None = None,
        *,
        name: str | None = None,
        runtime: Runtime | None = None,
    ) -> None:
        if resolver is not None and not callable(resolver):
            msg = f"resolver must be `Callable | None`, got {type(resolver).__name__}"
            raise TypeError(msg)

        if name is not None and not isinstance(name, str):
            msg = f"name must be `str | None`, got {type(name).__name__}"
            raise TypeError(msg)

        if runtime is not None and not isinstance(runtime, rt.Runtime):
            msg = f"runtime must be `Runtime | None`, got {type(runtime).__name__}"
            raise TypeError(msg)

        self.runtime = runtime or rt.default()
        self.id = self.runtime.next_id()
        self.name = name if name is not None else self.runtime.options.name

        self._result: Result[T] | None = None
        self._resolve_handlers: list[Handler[T]] = []
        self._reject_handlers: list[Handler[BaseException]] = []
        self._progress_handlers: list[Handler[float]] = []

        self.runtime.track(self)
        logger.debug("promise %s created (name=%s)", self.id, self.name)

        if resolver is not None:
            try:
                resolver(self.resolve, self.reject)
            except Exception as e:
                if not self.pending:
                    raise
                self.reject(e)

    def __repr__(self) -> str:
        return f"Promise(id={self.id}, name={self.name!r}, state={self.state})"

    @classmethod
    def from_value(cls, value: Any = None, *, name: str | None = None, runtime: Runtime | None = None) -> Promise[T]:
        promise = cls(name=name, runtime=runtime)
        promise.resolve(value)
        return promise

    @classmethod
    def from_error(cls, error: BaseException, *, name: str | None = None, runtime: Runtime | None = None) -> Promise[T]:
        promise = cls(name=name, runtime=runtime)
        promise.reject(error)
        return promise

    @property
    def state(self) -> State:
        if self._result is None:
            return "PENDING"
        return self._result.state

    @property
    def pending(self) -> bool:
        return self._result is None

    @property
    def resolved(self) -> bool:
        return isinstance(self._result, Ok)

    @property
    def rejected(self) -> bool:
        return isinstance(self._result, Ko)

    @property
    def result(self) -> Result[T]:
        if self._result is None:
            raise PledgeStateError(self.id, self.state, "read the result of")
        return self._result

    @property
    def value(self) -> T:
        match self._result:
            case Ok(v):
                return v
            case _:
                raise PledgeStateError(self.id, self.state, "read the value of")

    @property
    def error(self) -> BaseException:
        match self._result:
            case Ko(e):
                return e
            case _:
                raise PledgeStateError(self.id, self.state, "read the error of")

    def with_name(self, name: str) -> Promise[T]:
        if not isinstance(name, str):
            msg = f"name must be `str`, got {type(name).__name__}"
            raise TypeError(msg)
        self.name = name
        return self

    # settlement

    def resolve(self, value: Any = None) -> None:
        if self._result is not None:
            raise PledgeStateError(self.id, self.state, "resolve")

        self._result = Ok(value)
        self.runtime.untrack(self)
        logger.debug("promise %s resolved (name=%s)", self.id, self.name)

        handlers = self._resolve_handlers
        self._clear_handlers()
        self._dispatch(handlers, value)

    def reject(self, error: BaseException) -> None:
        if not isinstance(error, BaseException):
            msg = f"error must be `BaseException`, got {type(error).__name__}"
            raise TypeError(msg)

        if self._result is not None:
            raise PledgeStateError(self.id, self.state, "reject")

        self._result = Ko(error)
        self.runtime.untrack(self)
        logger.debug("promise %s rejected (name=%s): %r", self.id, self.name, error)

        handlers = self._reject_handlers
        self._clear_handlers()
        self._dispatch(handlers, error)

    def report_progress(self, progress: float) -> None:
        if self._result is not None:
            raise PledgeStateError(self.id, self.state, "report progress on")

        self._dispatch(list(self._progress_handlers), progress)

    def _clear_handlers(self) -> None:
        self._resolve_handlers = []
        self._reject_handlers = []
        self._progress_handlers = []

    def _dispatch[A](self, handlers: list[Handler[A]], arg: A) -> None:
        self.runtime.schedule(*(functools.partial(self._invoke, handler, arg) for handler in handlers))

    def _invoke[A](self, handler: Handler[A], arg: A) -> None:
        try:
            handler.callback(arg)
        except Exception as e:
            if handler.rejectable.pending:
                handler.rejectable.reject(e)
            else:
                # the derived promise is already settled, nothing downstream can observe the failure
                self.runtime.unhandled(handler.rejectable.id, e)

    # registration

    def _on_resolve(self, callback: Callable[[T], Any], rejectable: Promise[Any]) -> None:
        match self._result:
            case None:
                self._resolve_handlers.append(Handler(callback, rejectable))
            case Ok(v):
                self._dispatch([Handler(callback, rejectable)], v)

    def _on_reject(self, callback: Callable[[BaseException], Any], rejectable: Promise[Any]) -> None:
        match self._result:
            case None:
                self._reject_handlers.append(Handler(callback, rejectable))
            case Ko(e):
                self._dispatch([Handler(callback, rejectable)], e)

    def _on_progress(self, callback: Callable[[float], Any], rejectable: Promise[Any]) -> None:
        if self._result is None:
            self._progress_handlers.append(Handler(callback, rejectable))

    def _derive(self) -> Promise[Any]:
        return Promise(name=self.name, runtime=self.runtime)

    def _adopt(self, result: Any) -> None:
        if result is self:
            msg = "promise cannot be settled with itself"
            raise TypeError(msg)

        if not isinstance(result, Promise):
            self.resolve(result)
            return

        result._on_resolve(self._resolve_if_pending, self)
        result._on_reject(self._reject_if_pending, self)
        result._on_progress(self._report_if_pending, self)

    def _resolve_if_pending(self, value: T) -> None:
        if self.pending:
            self.resolve(value)

    def _reject_if_pending(self, error: BaseException) -> None:
        if self.pending:
            self.reject(error)

    def _report_if_pending(self, progress: float) -> None:
        if self.pending:
            self.report_progress(progress)

    # chaining

    def then(
        self,
        on_resolved: Callable[[T], Any] | None = None,
        on_rejected: Callable[[BaseException], Any] | None = None,
        on_progress: Callable[[float], Any] | None = None,
    ) -> Promise[Any]:
        """Chain handlers onto this promise and return the derived promise.

        When this promise resolves, `on_resolved` is called with the value and
        its return value settles the derived promise: a plain value resolves
        it, a returned promise is adopted, and a raised exception rejects it.
        Without `on_resolved` the value passes through unchanged.

        When this promise rejects, `on_rejected` is called with the error and
        its return value is handled the same way, which lets a rejection be
        recovered into a resolution. Without `on_rejected` the error passes
        through unchanged.

        Progress reports are given to `on_progress`; without it they are
        forwarded to the derived promise.

        Args:
            on_resolved (Callable[[T], Any] | None): Called with the value.
            on_rejected (Callable[[BaseException], Any] | None): Called with the error.
            on_progress (Callable[[float], Any] | None): Called with each progress report.

        Returns:
            Promise[Any]: The derived promise.

        """
        for arg, label in ((on_resolved, "on_resolved"), (on_rejected, "on_rejected"), (on_progress, "on_progress")):
            if arg is not None and not callable(arg):
                msg = f"{label} must be `Callable | None`, got {type(arg).__name__}"
                raise TypeError(msg)

        derived = self._derive()

        def resolved(value: T) -> None:
            if not derived.pending:
                return
            if on_resolved is None:
                derived.resolve(value)
            else:
                derived._adopt(on_resolved(value))

        def rejected(error: BaseException) -> None:
            if not derived.pending:
                return
            if on_rejected is None:
                derived.reject(error)
            else:
                derived._adopt(on_rejected(error))

        def progressed(progress: float) -> None:
            if on_progress is not None:
                on_progress(progress)
            elif derived.pending:
                derived.report_progress(progress)

        self._on_resolve(resolved, derived)
        self._on_reject(rejected, derived)
        self._on_progress(progressed, derived)
        return derived

    def catch(self, on_rejected: Callable[[BaseException], Any]) -> Promise[Any]:
        return self.then(None, on_rejected)

    def progress(self, on_progress: Callable[[float], Any]) -> Promise[T]:
        """Observe progress reports and return a promise that mirrors this one."""
        if not callable(on_progress):
            msg = f"on_progress must be `Callable`, got {type(on_progress).__name__}"
            raise TypeError(msg)

        derived = self._derive()

        def progressed(progress: float) -> None:
            on_progress(progress)
            derived._report_if_pending(progress)

        self._on_resolve(derived._resolve_if_pending, derived)
        self._on_reject(derived._reject_if_pending, derived)
        self._on_progress(progressed, derived)
        return derived

    def finally_(self, action: Callable[[], Any]) -> Promise[T]:
        """Run `action` on either outcome, then settle the same way this promise did.

        If `action` raises, or returns a promise that rejects, that failure
        replaces the original outcome.
        """
        if not callable(action):
            msg = f"action must be `Callable`, got {type(action).__name__}"
            raise TypeError(msg)

        def after(result: Result[T]) -> Any:
            ret = action()
            if isinstance(ret, Promise):
                return ret.then(lambda _: self._replay(result))
            return self._replay(result)

        return self.then(lambda v: after(Ok(v)), lambda e: after(Ko(e)))

    def _replay(self, result: Result[T]) -> Promise[T]:
        match result:
            case Ok(v):
                return Promise.from_value(v, name=self.name, runtime=self.runtime)
            case Ko(e):
                return Promise.from_error(e, name=self.name, runtime=self.runtime)

    def continue_with(self, producer: Callable[[], Any]) -> Promise[Any]:
        if not callable(producer):
            msg = f"producer must be `Callable`, got {type(producer).__name__}"
            raise TypeError(msg)
        return self.then(lambda _: producer(), lambda _: producer())

    def done(self, on_resolved: Callable[[T], Any] | None = None, on_rejected: Callable[[BaseException], Any] | None = None) -> None:
        """Terminate the chain.

        Any error that is not recovered by `on_rejected`, including one raised
        by either handler, is reported to the runtime's unhandled rejection
        subscribers instead of being dropped.
        """
        self.then(on_resolved, on_rejected).catch(lambda e: self.runtime.unhandled(self.id, e))

    # combinators

    def then_all(self, chain: Callable[[T], Iterable[Promise[Any]]]) -> Promise[list[Any]]:
        from pledge import combinators

        return self.then(lambda v: combinators.all(chain(v), runtime=self.runtime))

    def then_race(self, chain: Callable[[T], Iterable[Promise[Any]]]) -> Promise[Any]:
        from pledge import combinators

        return self.then(lambda v: combinators.race(chain(v), runtime=self.runtime))

    def then_first(self, chain: Callable[[T], Iterable[Callable[[], Promise[Any]]]]) -> Promise[Any]:
        from pledge import combinators

        return self.then(lambda v: combinators.first(chain(v), runtime=self.runtime))

    def then_sequence(self, chain: Callable[[T], Iterable[Callable[[], Promise[Any]]]]) -> Promise[list[Any]]:
        from pledge import combinators

        return self.then(lambda v: combinators.sequence(chain(v), runtime=self.runtime))

    @staticmethod
    def all(promises: Iterable[Promise[Any]], *, runtime: Runtime | None = None) -> Promise[list[Any]]:
        from pledge import combinators

        return combinators.all(promises, runtime=runtime)

    @staticmethod
    def race(promises: Iterable[Promise[Any]], *, runtime: Runtime | None = None) -> Promise[Any]:
        from pledge import combinators

        return combinators.race(promises, runtime=runtime)

    @staticmethod
    def first(factories: Iterable[Callable[[], Promise[Any]]], *, runtime: Runtime | None = None) -> Promise[Any]:
        from pledge import combinators

        return combinators.first(factories, runtime=runtime)

    @staticmethod
    def sequence(factories: Iterable[Callable[[], Promise[Any]]], *, runtime: Runtime | None = None) -> Promise[list[Any]]:
        from pledge import combinators

        return combinators.sequence(factories, runtime=runtime)
