from __future__ import annotations

from .errors import PledgeCanceledError, PledgeEmptyInputError, PledgeError, PledgeStateError
from .models.time_data import TimeData
from .options import Options
from .promise import Promise
from .runtime import Runtime
from .timer import PromiseTimer

__all__ = [
    "Options",
    "PledgeCanceledError",
    "PledgeEmptyInputError",
    "PledgeError",
    "PledgeStateError",
    "Promise",
    "PromiseTimer",
    "Runtime",
    "TimeData",
]
