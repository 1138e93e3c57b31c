from __future__ import annotations

from typing import Any


class PledgeError(Exception):
    def __init__(self, mesg: str, code: float) -> None:
        super().__init__(mesg)
        self.mesg = mesg
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code:03.0f}] {self.mesg}"

    def __reduce__(self) -> str | tuple[Any, ...]:
        return (self.__class__, (self.mesg, self.code))


# Error codes 100-199


class PledgeStateError(PledgeError):
    def __init__(self, promise_id: int, state: str, action: str) -> None:
        super().__init__(f"Cannot {action} promise {promise_id}, promise is {state}", 100)
        self.promise_id = promise_id
        self.state = state
        self.action = action

    def __reduce__(self) -> str | tuple[Any, ...]:
        return (self.__class__, (self.promise_id, self.state, self.action))


# Error codes 200-299


class PledgeEmptyInputError(PledgeError):
    def __init__(self, combinator: str) -> None:
        super().__init__(f"At least one input must be provided to {combinator}", 200)
        self.combinator = combinator

    def __reduce__(self) -> str | tuple[Any, ...]:
        return (self.__class__, (self.combinator,))


# Error codes 300-399


class PledgeCanceledError(PledgeError):
    def __init__(self, promise_id: int) -> None:
        super().__init__(f"Promise {promise_id} canceled", 300)
        self.promise_id = promise_id

    def __reduce__(self) -> str | tuple[Any, ...]:
        return (self.__class__, (self.promise_id,))
