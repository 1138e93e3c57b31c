from __future__ import annotations

import gc
import logging
import pickle
import weakref

import pytest

from pledge import runtime as rt
from pledge.errors import PledgeCanceledError, PledgeEmptyInputError, PledgeError, PledgeStateError
from pledge.logging import logger
from pledge.options import Options
from pledge.promise import Promise
from pledge.runtime import PendingInfo, Runtime


def test_runtimes_are_isolated() -> None:
    r1 = Runtime()
    r2 = Runtime()

    assert Promise[int](runtime=r1).id == 1
    assert Promise[int](runtime=r1).id == 2
    assert Promise[int](runtime=r2).id == 1


def test_pending_registry_tracks_until_settlement(runtime: Runtime) -> None:
    p1 = Promise[int](name="a", runtime=runtime)
    p2 = Promise[int](runtime=runtime)
    assert runtime.pending() == (PendingInfo(p1.id, "a"), PendingInfo(p2.id, None))

    p1.resolve(1)
    assert runtime.pending() == (PendingInfo(p2.id, None),)

    p2.reject(ValueError("boom"))
    assert runtime.pending() == ()


def test_abandoned_pending_promise_can_be_collected(runtime: Runtime) -> None:
    p = Promise[int](runtime=runtime)
    p.then(lambda v: v + 1).catch(lambda _: None)
    ref = weakref.ref(p)
    assert len(runtime.pending()) == 3

    del p
    gc.collect()

    assert ref() is None
    assert runtime.pending() == ()


def test_pending_registry_is_disabled_by_default() -> None:
    runtime = Runtime()
    Promise[int](runtime=runtime)
    assert runtime.pending() == ()


def test_default_name_from_options() -> None:
    runtime = Runtime(Options(name="job"))
    assert Promise[int](runtime=runtime).name == "job"
    assert Promise[int](name="other", runtime=runtime).name == "other"


def test_unhandled_subscribers_can_attach_and_detach(runtime: Runtime) -> None:
    seen: list[tuple[int, BaseException]] = []

    def handler(id: int, e: BaseException) -> None:
        seen.append((id, e))

    runtime.subscribe(handler)
    p = Promise[int](runtime=runtime)
    p.done()
    e = ValueError("boom")
    p.reject(e)
    assert seen == [(p.id, e)]

    runtime.unsubscribe(handler)
    q = Promise[int](runtime=runtime)
    q.done()
    q.reject(ValueError("ignored"))
    assert seen == [(p.id, e)]

    with pytest.raises(ValueError, match="not subscribed"):
        runtime.unsubscribe(handler)


def test_failing_subscriber_does_not_break_delivery(runtime: Runtime) -> None:
    seen: list[int] = []

    def broken(id: int, e: BaseException) -> None:
        msg = "subscriber failed"
        raise RuntimeError(msg)

    runtime.subscribe(broken)
    runtime.subscribe(lambda id, e: seen.append(id))

    p = Promise[int](runtime=runtime)
    p.done()
    p.reject(ValueError("boom"))
    assert seen == [p.id]


def test_unhandled_without_subscribers_is_logged(runtime: Runtime, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "propagate", True)

    p = Promise[int](runtime=runtime)
    p.done()
    with caplog.at_level(logging.WARNING, logger="pledge"):
        p.reject(ValueError("boom"))

    assert any("Unhandled rejection" in r.getMessage() for r in caplog.records)


def test_close_clears_subscribers_and_registry() -> None:
    seen: list[int] = []
    with Runtime(Options(track_pending=True)) as runtime:
        runtime.subscribe(lambda id, e: seen.append(id))
        Promise[int](runtime=runtime)
        assert len(runtime.pending()) == 1

    assert runtime.pending() == ()
    p = Promise[int](runtime=runtime)
    p.done()
    p.reject(ValueError("boom"))
    assert seen == []


def test_default_runtime_is_created_once_and_reset() -> None:
    assert rt.default() is rt.default()
    before = rt.default()
    rt.reset()
    assert rt.default() is not before


def test_log_level_is_applied_until_close(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "level", logging.WARNING)

    with Runtime(Options(log_level="DEBUG")):
        assert logger.level == logging.DEBUG

    assert logger.level == logging.WARNING

    Runtime(Options(log_level=logging.ERROR)).close()
    assert logger.level == logging.WARNING


def test_scheduled_tasks_run_in_order_without_nesting(runtime: Runtime) -> None:
    calls: list[str] = []

    def outer() -> None:
        runtime.schedule(lambda: calls.append("inner"))
        calls.append("outer")

    runtime.schedule(outer, lambda: calls.append("next"))
    assert calls == ["outer", "next", "inner"]


@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"track_pending": "yes"}, TypeError),
        ({"log_level": 1.5}, TypeError),
        ({"log_level": True}, TypeError),
        ({"log_level": "LOUD"}, ValueError),
        ({"name": 1}, TypeError),
    ],
)
def test_options_validation(kwargs: dict, error: type[Exception]) -> None:
    with pytest.raises(error):
        Options(**kwargs)


def test_options_merge() -> None:
    opts = Options(name="a").merge(track_pending=True)
    assert opts == Options(track_pending=True, name="a")
    assert opts.merge(name="b").name == "b"


def test_runtime_rejects_invalid_options() -> None:
    with pytest.raises(TypeError):
        Runtime(options={})  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "error",
    [
        PledgeStateError(1, "RESOLVED", "resolve"),
        PledgeEmptyInputError("race"),
        PledgeCanceledError(3),
    ],
)
def test_errors_survive_pickling(error: PledgeError) -> None:
    restored = pickle.loads(pickle.dumps(error))  # noqa: S301
    assert type(restored) is type(error)
    assert str(restored) == str(error)
    assert restored.code == error.code
