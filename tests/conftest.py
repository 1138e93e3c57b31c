from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

import pytest

from pledge import runtime as rt
from pledge.options import Options
from pledge.runtime import Runtime

if TYPE_CHECKING:
    from collections.abc import Generator


def pytest_configure() -> None:
    logging.basicConfig(level=logging.ERROR)  # set log levels very high for tests


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption("--seed", action="store", help="seed for the simulation, random when omitted")
    parser.addoption("--steps", action="store", type=int, default=250, help="number of simulation steps")


# Simulation fixtures


@pytest.fixture
def seed(request: pytest.FixtureRequest) -> str:
    return request.config.getoption("--seed") or str(random.getrandbits(63))


@pytest.fixture
def steps(request: pytest.FixtureRequest) -> int:
    return request.config.getoption("--steps")


# Runtime fixtures


@pytest.fixture
def runtime() -> Generator[Runtime]:
    with Runtime(Options(track_pending=True)) as runtime:
        yield runtime


@pytest.fixture
def unhandled(runtime: Runtime) -> list[tuple[int, BaseException]]:
    errors: list[tuple[int, BaseException]] = []
    runtime.subscribe(lambda id, e: errors.append((id, e)))
    return errors


@pytest.fixture(autouse=True)
def default_runtime() -> Generator[None]:
    yield
    rt.reset()
