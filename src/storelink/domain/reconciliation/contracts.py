"""Shared reconciliation contract components.

This module intentionally holds only:
- resolution outcomes produced by the identity resolver
- per-run statistics and the structured result returned to callers
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping


type MatchedKey = tuple[str, str]


class ResolutionStatus(StrEnum):
    """Outcome produced by identity resolution."""

    NEW = "new"
    RESOLVED = "resolved"
    CONFLICT = "conflict"


class MatchKind(StrEnum):
    """Which key matched; only exact matches exist, fuzzy matching is never done."""

    EMAIL = "email"
    EXTERNAL_ID = "external_id"
    POS_UUID = "pos_uuid"
    POS_NUMBER = "pos_number"
    STOREFRONT_CODE = "storefront_code"


@dataclass(slots=True, kw_only=True)
class NewEntityResolution:
    """No record matches; the caller should create one."""

    status: Literal[ResolutionStatus.NEW] = ResolutionStatus.NEW
    reason: str | None = None


@dataclass(slots=True, kw_only=True)
class ResolvedEntityResolution[TRecord]:
    """Exactly one record matches."""

    target: TRecord
    match_kind: MatchKind
    matched_key: MatchedKey | None = None
    reason: str | None = None
    status: Literal[ResolutionStatus.RESOLVED] = ResolutionStatus.RESOLVED


@dataclass(slots=True, kw_only=True)
class ConflictEntityResolution[TRecord]:
    """The keys of one inbound record point at incompatible bindings."""

    candidates: tuple[TRecord, ...]
    matched_key: MatchedKey | None = None
    reason: str | None = None
    status: Literal[ResolutionStatus.CONFLICT] = ResolutionStatus.CONFLICT

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError("Conflict resolution must include at least one candidate")


type EntityResolution[TRecord] = (
    NewEntityResolution | ResolvedEntityResolution[TRecord] | ConflictEntityResolution[TRecord]
)


class CustomerOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    CONFLICT = "conflict"


@dataclass(slots=True)
class CustomerBatchStats:
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    conflicts: int = 0
    errors: int = 0
    pages: int = 0

    def record(self, outcome: CustomerOutcome) -> None:
        match outcome:
            case CustomerOutcome.CREATED:
                self.created += 1
            case CustomerOutcome.UPDATED:
                self.updated += 1
            case CustomerOutcome.SKIPPED:
                self.skipped += 1
            case CustomerOutcome.CONFLICT:
                self.conflicts += 1


@dataclass(slots=True)
class VoucherSyncStats:
    fetched: int = 0
    created: int = 0
    linked: int = 0
    already_known: int = 0
    gift_cards_created: int = 0
    gift_card_failures: int = 0
    redemptions_fetched: int = 0
    redeemed: int = 0
    already_redeemed: int = 0
    echoes: int = 0
    unmatched: int = 0
    rejected: int = 0
    disable_failures: int = 0
    errors: int = 0


@dataclass(slots=True)
class OrderVoucherStats:
    purchases: int = 0
    vouchers_created: int = 0
    already_issued: int = 0
    gift_cards_created: int = 0
    gift_card_failures: int = 0
    redemptions: int = 0
    redemptions_applied: int = 0
    duplicates: int = 0
    clamped: int = 0
    unmatched: int = 0
    rejected: int = 0
    pos_mirrored: int = 0
    pos_mirror_failures: int = 0
    errors: int = 0


@dataclass(slots=True)
class ReconciliationResult:
    """Structured outcome of one public reconciliation operation."""

    success: bool
    counts: Mapping[str, int] = field(default_factory=dict[str, int])
    error: str | None = None

    @classmethod
    def from_stats(
        cls, stats: CustomerBatchStats | VoucherSyncStats | OrderVoucherStats
    ) -> ReconciliationResult:
        return cls(success=True, counts=asdict(stats))

    @classmethod
    def failed(
        cls, error: BaseException | str, *, counts: Mapping[str, int] | None = None
    ) -> ReconciliationResult:
        return cls(success=False, counts=dict(counts or {}), error=str(error))

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success, "counts": dict(self.counts)}
        if self.error is not None:
            payload["error"] = self.error
        return payload
