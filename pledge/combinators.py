from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pledge import runtime as rt
from pledge.errors import PledgeEmptyInputError
from pledge.promise import Promise

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pledge.runtime import Runtime


def all(promises: Iterable[Promise[Any]], *, runtime: Runtime | None = None) -> Promise[list[Any]]:  # noqa: A001
    """Wait for every promise to resolve.

    The returned promise resolves with the values in input order, or rejects
    with the first error delivered to it. Its progress is the mean of the
    latest progress of each input, where a resolved input counts as 1.0.
    """
    promises = list(promises)
    for promise in promises:
        _validate(promise, "all")

    result = Promise[list[Any]](runtime=runtime or _runtime_of(promises))

    if not promises:
        result.resolve([])
        return result

    remaining = len(promises)
    values: list[Any] = [None] * len(promises)
    progress = [0.0] * len(promises)

    def on_resolved(i: int, value: Any) -> None:
        nonlocal remaining
        values[i] = value
        progress[i] = 1.0
        remaining -= 1
        if remaining == 0 and result.pending:
            result.resolve(values)

    def on_rejected(error: BaseException) -> None:
        if result.pending:
            result.reject(error)

    def on_progress(i: int, value: float) -> None:
        progress[i] = value
        if result.pending:
            result.report_progress(sum(progress) / len(progress))

    for i, promise in enumerate(promises):
        promise.then(
            lambda v, i=i: on_resolved(i, v),
            on_rejected,
            lambda v, i=i: on_progress(i, v),
        ).done()

    return result


def race(promises: Iterable[Promise[Any]], *, runtime: Runtime | None = None) -> Promise[Any]:
    """Settle the same way as whichever promise settles first.

    Progress is the maximum of the latest progress of each input.
    """
    promises = list(promises)
    if not promises:
        raise PledgeEmptyInputError("race")
    for promise in promises:
        _validate(promise, "race")

    result = Promise[Any](runtime=runtime or _runtime_of(promises))
    progress = [0.0] * len(promises)

    def on_resolved(value: Any) -> None:
        if result.pending:
            result.resolve(value)

    def on_rejected(error: BaseException) -> None:
        if result.pending:
            result.reject(error)

    def on_progress(i: int, value: float) -> None:
        progress[i] = value
        if result.pending:
            result.report_progress(max(progress))

    for i, promise in enumerate(promises):
        promise.then(on_resolved, on_rejected, lambda v, i=i: on_progress(i, v)).done()

    return result


def first(factories: Iterable[Callable[[], Promise[Any]]], *, runtime: Runtime | None = None) -> Promise[Any]:
    """Try each factory in turn until one of their promises resolves.

    A factory is only called once the promise of the previous one has
    rejected. If every promise rejects, the returned promise rejects with the
    error of the last one. Progress advances by one slice per factory.
    """
    factories = list(factories)
    if not factories:
        raise PledgeEmptyInputError("first")

    result = Promise[Any](runtime=runtime or rt.default())
    count = len(factories)

    def attempt(i: int) -> None:
        result.report_progress(i / count)
        try:
            promise = _call(factories[i], "first")
        except Exception as e:
            failed(i, e)
            return

        promise.then(
            result.resolve,
            lambda e: failed(i, e),
            lambda v: result.report_progress((i + v) / count),
        ).done()

    def failed(i: int, error: BaseException) -> None:
        if i + 1 < count:
            attempt(i + 1)
        else:
            result.report_progress(1.0)
            result.reject(error)

    attempt(0)
    return result


def sequence(factories: Iterable[Callable[[], Promise[Any]]], *, runtime: Runtime | None = None) -> Promise[list[Any]]:
    """Call each factory once the promise of the previous one has resolved.

    Resolves with the values in factory order. The first rejection rejects
    the returned promise and no further factory is called.
    """
    factories = list(factories)
    result = Promise[list[Any]](runtime=runtime or rt.default())
    count = len(factories)
    values: list[Any] = []

    def step(i: int) -> None:
        if i == count:
            result.resolve(values)
            return

        result.report_progress(i / count)
        try:
            promise = _call(factories[i], "sequence")
        except Exception as e:
            result.reject(e)
            return

        def on_resolved(value: Any) -> None:
            values.append(value)
            step(i + 1)

        promise.then(
            on_resolved,
            result.reject,
            lambda v: result.report_progress((i + v) / count),
        ).done()

    step(0)
    return result


def _runtime_of(promises: list[Promise[Any]]) -> Runtime:
    return promises[0].runtime if promises else rt.default()


def _validate(promise: Any, combinator: str) -> None:
    if not isinstance(promise, Promise):
        msg = f"{combinator} expects `Promise` inputs, got {type(promise).__name__}"
        raise TypeError(msg)


def _call(factory: Callable[[], Promise[Any]], combinator: str) -> Promise[Any]:
    promise = factory()
    _validate(promise, combinator)
    return promise
