"""Failure taxonomy shared by the reconcilers and the adapters.

- ``TransientExternalFailure``: network, timeout, auth or status failure of an
  external gateway. Never mutates internal state; the next trigger retries.
- ``ConstraintViolation``: a unique key already exists on create. Expected under
  concurrent writers; callers fall back to the update path.
- ``DataIntegrityAnomaly``: an applied value would break an invariant. Callers
  clamp and log instead of raising past the record boundary.
- ``UnresolvableRecord``: the inbound record lacks a stable matching key, or its
  keys point at different records. Skipped, logged and counted.
"""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class TransientExternalFailure(ReconciliationError):
    """Raised by gateways when an external call fails in a retryable way."""

    def __init__(self, message: str, *, gateway: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.gateway = gateway
        self.status_code = status_code


class ConstraintViolation(ReconciliationError):
    """Raised by the identity store when a unique key is already taken."""


class DataIntegrityAnomaly(ReconciliationError):
    """Raised when an applied value would violate a record invariant."""


class UnresolvableRecord(ReconciliationError):
    """Raised when an inbound record cannot be matched safely."""


class IdentifierConflict(UnresolvableRecord):
    """An external identifier is already bound to a different record."""

    def __init__(self, message: str, *, target: str, external_id: str) -> None:
        super().__init__(message)
        self.target = target
        self.external_id = external_id


class InvalidTransition(ReconciliationError):
    """Raised when a voucher status change would move backwards."""
