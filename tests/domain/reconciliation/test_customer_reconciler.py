from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import pytest

from storelink.domain.errors import TransientExternalFailure, UnresolvableRecord
from storelink.domain.model import CustomerRecord, CustomerSource, IntegrationTarget, SyncStatus
from storelink.domain.reconciliation import (
    IDENTIFIER_CONFLICT_ACTION,
    CustomerBatchStats,
    CustomerOutcome,
    CustomerReconciler,
    created_action,
    enriched_action,
)
from tests.helpers.gateways import FakeStorefront
from tests.helpers.records import NOW, fixed_clock, make_customer

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from storelink.adapters.sqlalchemy import IdentityStore, SqlAlchemyUnitOfWork
    from storelink.domain.ports import StoreRepositories, UnitOfWork


def _reconciler(store: IdentityStore, **kwargs: object) -> CustomerReconciler:
    return CustomerReconciler(
        store.unit_of_work,
        clock=fixed_clock,
        **kwargs,  # type: ignore[arg-type]
    )


def _load(store: IdentityStore, email: str = "a@b.com") -> CustomerRecord:
    with store.unit_of_work() as uow:
        record = uow.repositories.customers.get_by_email(email)
    assert record is not None
    return record


def _count(store: IdentityStore) -> int:
    with store.unit_of_work() as uow:
        return uow.repositories.customers.count_by_sync_status(
            IntegrationTarget.SHOPIFY, SyncStatus.SYNCED
        ) + uow.repositories.customers.count_by_sync_status(
            IntegrationTarget.SHOPIFY, SyncStatus.MANUAL_REVIEW
        )


def test_new_customer_is_created_with_audit_entry(store: IdentityStore) -> None:
    outcome = _reconciler(store).reconcile_one(
        make_customer(" A@B.com ", "77", first_name="Ada", orders_count=3, tags=("vip",))
    )

    assert outcome is CustomerOutcome.CREATED
    record = _load(store)
    assert record.email == "a@b.com"
    assert record.first_name == "Ada"
    assert record.source is CustomerSource.SHOPIFY
    integration = record.integration(IntegrationTarget.SHOPIFY)
    assert integration is not None
    assert integration.external_id == "77"
    assert integration.sync_status is SyncStatus.SYNCED
    assert integration.last_sync_date == NOW
    assert integration.orders_count == 3
    assert integration.tags == ["vip"]
    assert [entry.action for entry in record.audit_trail] == ["CREATED_FROM_SHOPIFY"]
    assert record.audit_trail[0].performed_by == "SYSTEM"


def test_same_event_twice_yields_one_record(store: IdentityStore) -> None:
    reconciler = _reconciler(store)
    event = make_customer("a@b.com", "77", first_name="Ada", phone="+49 1")

    first = reconciler.reconcile_one(event)
    after_first = _load(store)
    second = reconciler.reconcile_one(event)
    after_second = _load(store)

    assert (first, second) == (CustomerOutcome.CREATED, CustomerOutcome.UPDATED)
    assert _count(store) == 1
    assert after_second.id == after_first.id
    assert after_second.first_name == after_first.first_name
    assert after_second.phone == after_first.phone
    assert after_second.external_id(IntegrationTarget.SHOPIFY) == "77"
    assert [entry.action for entry in after_second.audit_trail] == ["CREATED_FROM_SHOPIFY"]


def test_resync_never_overwrites_populated_profile_fields(store: IdentityStore) -> None:
    reconciler = _reconciler(store)
    reconciler.reconcile_one(make_customer(first_name="Ada", orders_count=1))

    outcome = reconciler.reconcile_one(
        make_customer(
            first_name="Grace",
            phone="+49 30 1234",
            orders_count=5,
            total_spent="120.50",
            last_order_id="9001",
            tags=("repeat",),
        )
    )

    assert outcome is CustomerOutcome.UPDATED
    record = _load(store)
    assert record.first_name == "Ada"
    assert record.phone == "+49 30 1234"
    integration = record.integration(IntegrationTarget.SHOPIFY)
    assert integration is not None
    assert integration.orders_count == 5
    assert integration.total_spent == "120.50"
    assert integration.last_order_id == "9001"
    assert integration.tags == ["repeat"]
    action = enriched_action(CustomerSource.SHOPIFY)
    enriched = [e for e in record.audit_trail if e.action == action]
    assert len(enriched) == 1
    assert enriched[0].details == {"fields": ["phone"]}


def test_customer_without_email_is_skipped(store: IdentityStore) -> None:
    outcome = _reconciler(store).reconcile_one(make_customer(email="  ", external_id="88"))

    assert outcome is CustomerOutcome.SKIPPED
    assert _count(store) == 0


def test_email_differing_in_case_and_spacing_matches_existing_record(
    store: IdentityStore,
) -> None:
    reconciler = _reconciler(store)
    reconciler.reconcile_one(make_customer("a@b.com", "77"))

    outcome = reconciler.reconcile_one(make_customer("  A@B.COM\t", "77", first_name="Ada"))

    assert outcome is CustomerOutcome.UPDATED
    assert _count(store) == 1
    assert _load(store).first_name == "Ada"


def test_manual_source_is_rejected(store: IdentityStore) -> None:
    with pytest.raises(UnresolvableRecord, match="no integration target"):
        _reconciler(store).reconcile_one(make_customer(source=CustomerSource.MANUAL))


def test_email_bound_to_other_id_is_flagged_for_review(store: IdentityStore) -> None:
    reconciler = _reconciler(store)
    reconciler.reconcile_one(make_customer("a@b.com", "77", first_name="Ada"))

    outcome = reconciler.reconcile_one(make_customer("a@b.com", "78", first_name="Eve"))

    assert outcome is CustomerOutcome.CONFLICT
    record = _load(store)
    assert record.first_name == "Ada"
    integration = record.integration(IntegrationTarget.SHOPIFY)
    assert integration is not None
    assert integration.external_id == "77"
    assert integration.sync_status is SyncStatus.MANUAL_REVIEW
    assert integration.sync_error is not None
    assert "78" in integration.sync_error
    conflict = record.audit_trail[-1]
    assert conflict.action == IDENTIFIER_CONFLICT_ACTION
    assert conflict.details["incoming_external_id"] == "78"
    assert conflict.details["bound_external_id"] == "77"


def test_external_id_match_updates_record_with_changed_email(store: IdentityStore) -> None:
    reconciler = _reconciler(store)
    reconciler.reconcile_one(make_customer("old@b.com", "77"))

    outcome = reconciler.reconcile_one(make_customer("new@b.com", "77", city="Berlin"))

    assert outcome is CustomerOutcome.UPDATED
    record = _load(store, "old@b.com")
    assert record.city == "Berlin"
    with store.unit_of_work() as uow:
        assert uow.repositories.customers.get_by_email("new@b.com") is None


def test_external_id_owned_by_other_record_conflicts(store: IdentityStore) -> None:
    reconciler = _reconciler(store)
    reconciler.reconcile_one(make_customer("a@b.com", "77"))
    reconciler.reconcile_one(make_customer("c@d.com", "99"))

    outcome = reconciler.reconcile_one(make_customer("a@b.com", "99"))

    assert outcome is CustomerOutcome.CONFLICT
    assert _load(store).external_id(IntegrationTarget.SHOPIFY) == "77"
    assert _load(store, "c@d.com").external_id(IntegrationTarget.SHOPIFY) == "99"


class RacingUnitOfWork:
    """Lets a concurrent writer commit right before this unit of work does."""

    def __init__(self, inner: SqlAlchemyUnitOfWork, before_commit: Callable[[], None]) -> None:
        self.inner = inner
        self.before_commit: Callable[[], None] | None = before_commit

    @property
    def repositories(self) -> StoreRepositories:
        return self.inner.repositories

    def __enter__(self) -> RacingUnitOfWork:
        self.inner.__enter__()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        return self.inner.__exit__(exc_type, exc_value, traceback)

    def commit(self) -> None:
        if self.before_commit is not None:
            racer, self.before_commit = self.before_commit, None
            racer()
        self.inner.commit()

    def rollback(self) -> None:
        self.inner.rollback()


def test_lost_create_race_is_retried_as_update(store: IdentityStore) -> None:
    def concurrent_create() -> None:
        with store.unit_of_work() as uow:
            racer = CustomerRecord(email="a@b.com", first_name="Racer")
            racer.bind_external_id(IntegrationTarget.SHOPIFY, "77")
            uow.repositories.customers.add(racer)
            uow.commit()

    calls: list[int] = []

    def uow_factory() -> UnitOfWork:
        calls.append(1)
        if len(calls) == 1:
            return RacingUnitOfWork(store.unit_of_work(), concurrent_create)
        return store.unit_of_work()

    reconciler = CustomerReconciler(uow_factory, clock=fixed_clock)
    outcome = reconciler.reconcile_one(make_customer(first_name="Ada", orders_count=2))

    assert outcome is CustomerOutcome.UPDATED
    assert len(calls) == 2
    record = _load(store)
    assert record.first_name == "Racer"
    integration = record.integration(IntegrationTarget.SHOPIFY)
    assert integration is not None
    assert integration.orders_count == 2
    assert integration.sync_status is SyncStatus.SYNCED
    assert created_action(CustomerSource.SHOPIFY) not in [e.action for e in record.audit_trail]


def test_batch_isolates_failing_records(store: IdentityStore) -> None:
    storefront = FakeStorefront(
        pages=[
            [make_customer("a@b.com", "1"), make_customer(None, "2")],
            [make_customer("bad@b.com", "3", source=CustomerSource.MANUAL)],
            [make_customer("c@d.com", "4"), make_customer("a@b.com", "1")],
        ]
    )

    stats = _reconciler(store).reconcile_batch(storefront.list_customers)

    assert stats == CustomerBatchStats(
        processed=5, created=2, updated=1, skipped=1, conflicts=0, errors=1, pages=3
    )
    assert storefront.page_requests == [None, "1", "2"]


def test_page_fetch_failure_aborts_batch_and_keeps_counts(store: IdentityStore) -> None:
    storefront = FakeStorefront(
        pages=[[make_customer("a@b.com", "1")], [make_customer("c@d.com", "2")]],
        fail_on_page=1,
    )
    stats = CustomerBatchStats()

    with pytest.raises(TransientExternalFailure):
        _reconciler(store).reconcile_batch(storefront.list_customers, stats=stats)

    assert stats.pages == 1
    assert stats.created == 1
    _load(store)


def test_batch_stops_at_max_pages(store: IdentityStore) -> None:
    storefront = FakeStorefront(
        pages=[[make_customer(f"c{i}@b.com", str(i))] for i in range(4)],
    )

    stats = _reconciler(store, max_pages=2).reconcile_batch(storefront.list_customers)

    assert stats.pages == 2
    assert stats.created == 2
