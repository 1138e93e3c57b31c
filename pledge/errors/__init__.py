from __future__ import annotations

from .errors import PledgeCanceledError, PledgeEmptyInputError, PledgeError, PledgeStateError

__all__ = ["PledgeCanceledError", "PledgeEmptyInputError", "PledgeError", "PledgeStateError"]
