"""Error kinds reported by the services and the result type that carries them.

Services never raise these to their callers. Each public operation returns a
``Result`` holding either the payload or one of the errors below, so the HTTP
layer can collapse every kind into the same failure signal while logs and
tests still see which one happened.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class AdapterError(Exception):
    """Base class; ``context`` holds the identifiers involved (ids, operation)."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


class PatientNotFound(AdapterError):
    """No patient resolves for the given id or owning user id."""


class PersistenceFailure(AdapterError):
    """A document store, file store or user directory call failed."""


class NotificationFailure(AdapterError):
    """The SMS could not be composed or sent. Never fails the triggering update."""


class PreconditionViolation(AdapterError):
    """The operation was invoked without something it requires."""


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: AdapterError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AdapterError) -> "Result[T]":
        return cls(error=error)
