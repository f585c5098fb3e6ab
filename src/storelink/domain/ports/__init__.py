"""Domain port definitions for adapters."""

from __future__ import annotations

from .gateways import (
    CustomerPage,
    GiftCardRedemption,
    PosGateway,
    PosRedemption,
    PosVoucher,
    PosVoucherRef,
    SourceCustomer,
    StorefrontGateway,
    StorefrontOrder,
    VoucherPurchase,
)
from .persistence import (
    CustomerRepository,
    Repository,
    VoucherApplicationRepository,
    VoucherRepository,
)
from .unit_of_work import StoreRepositories, UnitOfWork, UnitOfWorkFactory

__all__ = [
    "CustomerPage",
    "CustomerRepository",
    "GiftCardRedemption",
    "PosGateway",
    "PosRedemption",
    "PosVoucher",
    "PosVoucherRef",
    "Repository",
    "SourceCustomer",
    "StoreRepositories",
    "StorefrontGateway",
    "StorefrontOrder",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "VoucherApplicationRepository",
    "VoucherPurchase",
    "VoucherRepository",
]
