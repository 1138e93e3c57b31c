from __future__ import annotations

import logging
from dataclasses import dataclass

ALLOWED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Options:
    track_pending: bool = False
    log_level: int | str = logging.NOTSET
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.track_pending, bool):
            msg = f"track_pending must be `bool`, got {type(self.track_pending).__name__}"
            raise TypeError(msg)

        if isinstance(self.log_level, bool) or not isinstance(self.log_level, int | str):
            msg = f"log_level must be `int | str`, got {type(self.log_level).__name__}"
            raise TypeError(msg)

        if isinstance(self.log_level, str) and self.log_level not in ALLOWED_LOG_LEVELS:
            msg = f"string log_level must be one of {ALLOWED_LOG_LEVELS}, got {self.log_level!r}"
            raise ValueError(msg)

        if self.name is not None and not isinstance(self.name, str):
            msg = f"name must be `str | None`, got {type(self.name).__name__}"
            raise TypeError(msg)

    def merge(
        self,
        *,
        track_pending: bool | None = None,
        log_level: int | str | None = None,
        name: str | None = None,
    ) -> Options:
        return Options(
            track_pending=track_pending if track_pending is not None else self.track_pending,
            log_level=log_level if log_level is not None else self.log_level,
            name=name if name is not None else self.name,
        )
