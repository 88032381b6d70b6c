from __future__ import annotations
from dataclasses import dataclass
from typing import Generic, Literal, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """
    Outcome of a call to an external collaborator.

    attributes:
    - status: 'ok' when the collaborator answered, 'fallback' when the deterministic
      substitute was used instead.
    - value: T – the answer (always populated, whichever path produced it).
    - error: str | None – why the fallback was taken.
    """
    status: Literal["ok", "fallback"]
    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, value: T) -> "CallResult[T]":
        return cls("ok", value)

    @classmethod
    def fallback(cls, value: T, error: str) -> "CallResult[T]":
        return cls("fallback", value, error)
