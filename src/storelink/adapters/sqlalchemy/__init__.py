"""SQLAlchemy adapter package for storelink."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyVoucherApplicationRepository,
    SqlAlchemyVoucherRepository,
)
from .unit_of_work import IdentityStore, SqlAlchemyUnitOfWork, StartupError

__all__ = [
    "IdentityStore",
    "SqlAlchemyCustomerRepository",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyVoucherApplicationRepository",
    "SqlAlchemyVoucherRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
]
