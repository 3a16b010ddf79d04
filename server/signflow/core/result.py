from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from signflow.core.errors import WorkflowError

T = TypeVar("T")


@dataclass(slots=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[WorkflowError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: WorkflowError) -> "Result[T]":
        return cls(error=error)
