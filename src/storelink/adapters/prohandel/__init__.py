"""Public interface for the ProHandel adapter."""

from __future__ import annotations

from .client import PosAPIError, PosAuthError, ProHandelClient, format_since
from .schema import RedemptionPayload, TokenResponse, VoucherPayload
from .translator import parse_redemption, parse_voucher

__all__ = [
    "PosAPIError",
    "PosAuthError",
    "ProHandelClient",
    "RedemptionPayload",
    "TokenResponse",
    "VoucherPayload",
    "format_since",
    "parse_redemption",
    "parse_voucher",
]
