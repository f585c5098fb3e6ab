"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from storelink.domain.ports.persistence import (
        CustomerRepository,
        VoucherApplicationRepository,
        VoucherRepository,
    )


@dataclass(slots=True)
class StoreRepositories:
    """Repositories of the identity store, managed together."""

    customers: CustomerRepository
    vouchers: VoucherRepository
    applications: VoucherApplicationRepository


@runtime_checkable
class UnitOfWork(Protocol):
    """One transaction against the identity store.

    ``commit`` raises ``ConstraintViolation`` when a unique key was taken by a
    concurrent writer; the transaction is rolled back by then.
    """

    @property
    def repositories(self) -> StoreRepositories: ...

    def __enter__(self) -> UnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


type UnitOfWorkFactory = Callable[[], UnitOfWork]
