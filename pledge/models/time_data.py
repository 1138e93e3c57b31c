from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TimeData:
    elapsed_time: float = 0.0
    delta_time: float = 0.0
    elapsed_updates: int = 0
