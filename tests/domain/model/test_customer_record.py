from __future__ import annotations

import pytest

from storelink.domain.errors import IdentifierConflict
from storelink.domain.model import CustomerRecord, IntegrationTarget, SyncStatus, normalize_email


def test_email_is_normalized() -> None:
    assert CustomerRecord(email="  Ada@Example.COM ").email == "ada@example.com"
    assert normalize_email("   ") is None
    assert normalize_email(None) is None


def test_record_requires_email() -> None:
    with pytest.raises(ValueError, match="requires an email"):
        CustomerRecord(email=" ")


def test_rebinding_external_id_needs_override() -> None:
    record = CustomerRecord(email="ada@example.com")
    record.bind_external_id(IntegrationTarget.SHOPIFY, "77")
    record.bind_external_id(IntegrationTarget.SHOPIFY, "77")

    with pytest.raises(IdentifierConflict) as excinfo:
        record.bind_external_id(IntegrationTarget.SHOPIFY, "78")

    assert excinfo.value.external_id == "78"
    assert record.external_id(IntegrationTarget.SHOPIFY) == "77"

    record.bind_external_id(IntegrationTarget.SHOPIFY, "78", override=True)
    assert record.external_id(IntegrationTarget.SHOPIFY) == "78"


def test_integrations_are_independent_per_target() -> None:
    record = CustomerRecord(email="ada@example.com")
    shop = record.bind_external_id(IntegrationTarget.SHOPIFY, "77")
    pos = record.ensure_integration(IntegrationTarget.PROHANDEL)

    shop.mark_synced()
    pos.mark_error("timeout")

    assert shop.sync_status is SyncStatus.SYNCED
    assert pos.sync_status is SyncStatus.ERROR
    assert pos.sync_error == "timeout"
    assert len(record.integrations) == 2
    assert record.integration(IntegrationTarget.PROHANDEL) is pos


def test_fill_profile_only_fills_empty_fields() -> None:
    record = CustomerRecord(email="ada@example.com", first_name="Ada")

    filled = record.fill_profile(first_name="Grace", last_name="Lovelace", phone="")

    assert filled == ["last_name"]
    assert record.first_name == "Ada"
    assert record.last_name == "Lovelace"
    assert record.full_name == "Ada Lovelace"


def test_fill_profile_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError, match="Unknown profile field"):
        CustomerRecord(email="ada@example.com").fill_profile(email="x@y.z")


def test_audit_trail_is_appended() -> None:
    record = CustomerRecord(email="ada@example.com")

    record.record_audit("CREATED_FROM_SHOPIFY", performed_by="SYSTEM", details={"id": "77"})
    record.record_audit("PROFILE_ENRICHED_FROM_SHOPIFY", performed_by="SYSTEM")

    assert [entry.action for entry in record.audit_trail] == [
        "CREATED_FROM_SHOPIFY",
        "PROFILE_ENRICHED_FROM_SHOPIFY",
    ]
    assert record.audit_trail[0].customer_id == record.id
