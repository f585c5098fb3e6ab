"""Customer reconciliation between external systems and the identity store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from storelink.domain.errors import (
    ConstraintViolation,
    ReconciliationError,
    UnresolvableRecord,
)
from storelink.domain.model import (
    CustomerRecord,
    CustomerSource,
    IntegrationTarget,
    normalize_email,
    utcnow,
)

from .contracts import (
    ConflictEntityResolution,
    CustomerBatchStats,
    CustomerOutcome,
    NewEntityResolution,
)
from .resolve import resolve_customer

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from storelink.domain.model import IntegrationRecord
    from storelink.domain.ports import CustomerPage, SourceCustomer, UnitOfWorkFactory
    from storelink.domain.time_windows import Clock

    type FetchCustomerPage = Callable[[str | None], CustomerPage]


log = getLogger(__name__)

_TARGET_BY_SOURCE: dict[CustomerSource, IntegrationTarget] = {
    CustomerSource.SHOPIFY: IntegrationTarget.SHOPIFY,
    CustomerSource.PROHANDEL: IntegrationTarget.PROHANDEL,
}

IDENTIFIER_CONFLICT_ACTION = "IDENTIFIER_CONFLICT"


def created_action(source: CustomerSource) -> str:
    return f"CREATED_FROM_{source.name}"


def enriched_action(source: CustomerSource) -> str:
    return f"PROFILE_ENRICHED_FROM_{source.name}"


@dataclass(slots=True)
class CustomerReconciler:
    """Upsert inbound customers into the store, one unit of work per record."""

    uow_factory: UnitOfWorkFactory
    audit_actor: str = "SYSTEM"
    clock: Clock = utcnow
    max_pages: int | None = None

    def reconcile_one(self, source: SourceCustomer) -> CustomerOutcome:
        """Create or update the record for one inbound customer.

        A create that loses a race on the unique email or external id is
        retried once through the update path.
        """

        target = _TARGET_BY_SOURCE.get(source.source)
        if target is None:
            raise UnresolvableRecord(
                f"Customers from {source.source} carry no integration target"
            )

        email = normalize_email(source.email)
        if email is None:
            log.warning(
                "Skipping %s customer %s: no email to match on", source.source, source.external_id
            )
            return CustomerOutcome.SKIPPED

        try:
            return self._apply(source, target, email=email, allow_create=True)
        except ConstraintViolation:
            log.info("Customer %s was created concurrently; retrying as update", email)
            return self._apply(source, target, email=email, allow_create=False)

    def reconcile_batch(
        self, fetch_page: FetchCustomerPage, *, stats: CustomerBatchStats | None = None
    ) -> CustomerBatchStats:
        """Walk every page from ``fetch_page`` and reconcile each customer.

        Per-record failures are counted and logged and never abort the batch.
        A failing page fetch propagates, leaving the counts of the pages already
        processed in the store and in ``stats`` when the caller passed one.
        """

        stats = stats if stats is not None else CustomerBatchStats()
        page_token: str | None = None
        seen_tokens: set[str] = set()
        while True:
            page = fetch_page(page_token)
            stats.pages += 1
            for source in page.records:
                stats.processed += 1
                try:
                    outcome = self.reconcile_one(source)
                except Exception:  # noqa: BLE001 - one bad record must not stop the batch
                    stats.errors += 1
                    log.exception(
                        "Failed to reconcile %s customer %s", source.source, source.external_id
                    )
                    continue
                stats.record(outcome)

            next_token = page.next_page_token
            if not next_token:
                break
            if next_token in seen_tokens:
                log.warning("Page token %s repeated; stopping pagination", next_token)
                break
            if self.max_pages is not None and stats.pages >= self.max_pages:
                log.info("Stopping after %s pages", stats.pages)
                break
            seen_tokens.add(next_token)
            page_token = next_token

        log.info(
            "Customer batch done: processed=%s created=%s updated=%s skipped=%s "
            "conflicts=%s errors=%s",
            stats.processed,
            stats.created,
            stats.updated,
            stats.skipped,
            stats.conflicts,
            stats.errors,
        )
        return stats

    # ------------------------------------------------------------------

    def _apply(
        self,
        source: SourceCustomer,
        target: IntegrationTarget,
        *,
        email: str,
        allow_create: bool,
    ) -> CustomerOutcome:
        now = self.clock()
        with self.uow_factory() as uow:
            customers = uow.repositories.customers
            resolution = resolve_customer(
                customers, email=email, target=target, external_id=source.external_id
            )

            if isinstance(resolution, ConflictEntityResolution):
                record = resolution.candidates[0]
                self._flag_conflict(record, source, target, reason=resolution.reason, now=now)
                uow.commit()
                return CustomerOutcome.CONFLICT

            if isinstance(resolution, NewEntityResolution):
                if not allow_create:
                    raise ReconciliationError(
                        f"Customer {source.external_id} vanished after a create conflict"
                    )
                record = self._create(source, target, email=email, now=now)
                customers.add(record)
                uow.commit()
                log.info("Created customer %s from %s", record.email, source.source)
                return CustomerOutcome.CREATED

            record = resolution.target
            self._update(record, source, target, now=now)
            uow.commit()
            log.debug("Updated customer %s from %s", record.email, source.source)
            return CustomerOutcome.UPDATED

    def _create(
        self, source: SourceCustomer, target: IntegrationTarget, *, email: str, now: datetime
    ) -> CustomerRecord:
        record = CustomerRecord(
            email=email,
            first_name=source.first_name,
            last_name=source.last_name,
            phone=source.phone,
            street=source.street,
            city=source.city,
            zip_code=source.zip_code,
            source=source.source,
            created_at=now,
        )
        integration = record.bind_external_id(target, source.external_id)
        _copy_figures(integration, source)
        integration.mark_synced(now)
        record.record_audit(
            created_action(source.source),
            performed_by=self.audit_actor,
            details={"external_id": source.external_id},
            at=now,
        )
        return record

    def _update(
        self,
        record: CustomerRecord,
        source: SourceCustomer,
        target: IntegrationTarget,
        *,
        now: datetime,
    ) -> None:
        integration = record.bind_external_id(target, source.external_id)
        _copy_figures(integration, source)
        integration.mark_synced(now)
        filled = record.fill_profile(
            first_name=source.first_name,
            last_name=source.last_name,
            phone=source.phone,
            street=source.street,
            city=source.city,
            zip_code=source.zip_code,
        )
        if filled:
            record.record_audit(
                enriched_action(source.source),
                performed_by=self.audit_actor,
                details={"fields": filled},
                at=now,
            )
        record.touch(now)

    def _flag_conflict(
        self,
        record: CustomerRecord,
        source: SourceCustomer,
        target: IntegrationTarget,
        *,
        reason: str | None,
        now: datetime,
    ) -> None:
        message = (
            f"{target} id {source.external_id} conflicts with existing binding "
            f"{record.external_id(target)} ({reason})"
        )
        log.warning("Identifier conflict for %s: %s", record.email, message)
        record.ensure_integration(target).mark_manual_review(message, now)
        record.record_audit(
            IDENTIFIER_CONFLICT_ACTION,
            performed_by=self.audit_actor,
            details={
                "target": target.value,
                "incoming_external_id": source.external_id,
                "bound_external_id": record.external_id(target),
                "reason": reason,
            },
            at=now,
        )
        record.touch(now)


def _copy_figures(integration: IntegrationRecord, source: SourceCustomer) -> None:
    """Figures owned by the external system always take its latest value."""

    integration.orders_count = source.orders_count
    integration.total_spent = source.total_spent
    integration.last_order_id = source.last_order_id
    integration.tags = list(source.tags)
