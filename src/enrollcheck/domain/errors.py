"""Domain error hierarchy shared by the reconciliation core and the store adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class EnrollCheckError(Exception):
    """Base class for every error raised by enrollcheck."""


class StoreError(EnrollCheckError):
    """A record store call failed for a reason that is not retried."""

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind


class NotFoundError(StoreError):
    """The requested row does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} row {key!r} not found", kind=kind)
        self.key = key


class DuplicateRecordError(StoreError):
    """A create violated a uniqueness constraint (another writer got there first)."""


class TransientStoreError(StoreError):
    """Network or availability failure; safe to retry."""


class PayloadValidationError(EnrollCheckError):
    """A payload could not be turned into its strict record type."""


class MissingRequiredFieldError(PayloadValidationError):
    def __init__(self, kind: str, field_name: str) -> None:
        super().__init__(f"{kind} payload is missing required field {field_name!r}")
        self.kind = kind
        self.field_name = field_name


class OwnershipMismatchError(EnrollCheckError):
    """A row found for one owner carries a different owner reference."""


class PartialWriteError(EnrollCheckError):
    """One or more independent writes of a multi-step operation failed.

    Writes that succeeded are not rolled back; re-running the operation converges.
    """

    def __init__(self, message: str, failures: Sequence[BaseException]) -> None:
        super().__init__(f"{message} ({len(failures)} failed)")
        self.failures: tuple[BaseException, ...] = tuple(failures)

    @property
    def retryable(self) -> bool:
        return bool(self.failures) and all(is_retryable(exc) for exc in self.failures)


def is_retryable(exc: BaseException) -> bool:
    """Return whether replaying the failed operation may succeed."""

    if isinstance(exc, TransientStoreError):
        return True
    if isinstance(exc, PartialWriteError):
        return exc.retryable
    return False
