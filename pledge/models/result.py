from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal

type Result[T] = Ok[T] | Ko


@dataclass(frozen=True)
class Ok[T]:
    """Outcome of a resolved promise."""

    state: ClassVar[Literal["RESOLVED"]] = "RESOLVED"
    value: T


@dataclass(frozen=True)
class Ko:
    """Outcome of a rejected promise."""

    state: ClassVar[Literal["REJECTED"]] = "REJECTED"
    error: BaseException
