"""Identity resolution against the store.

Responsibilities of this stage:
- find the record an inbound customer or voucher refers to
- classify it as NEW/RESOLVED/CONFLICT
- never mutate or commit

Customers match on normalised email first, then on the source-specific external
id. Vouchers match on the disjunction of POS UUID, POS number and storefront
code. Matching is exact; nothing fuzzy happens here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storelink.domain.model import normalize_email

from .contracts import (
    ConflictEntityResolution,
    MatchKind,
    NewEntityResolution,
    ResolvedEntityResolution,
)

if TYPE_CHECKING:
    from storelink.domain.model import CustomerRecord, IntegrationTarget, VoucherRecord
    from storelink.domain.ports import CustomerRepository, VoucherRepository

    from .contracts import EntityResolution


def resolve_customer(
    customers: CustomerRepository,
    *,
    email: str | None,
    target: IntegrationTarget,
    external_id: str | None,
) -> EntityResolution[CustomerRecord]:
    """Resolve an inbound customer.

    - no email -> ``NewEntityResolution`` with reason ``missing_email``; callers
      must refuse to create in that case
    - email match whose binding for ``target`` differs from ``external_id`` ->
      conflict
    - email match and external id bound to another record -> conflict
    - email match -> resolved by email
    - external id match only -> resolved by external id
    """

    normalized = normalize_email(email)
    by_email = customers.get_by_email(normalized) if normalized else None
    by_external = (
        customers.get_by_external_id(target, external_id) if external_id is not None else None
    )

    if by_email is not None:
        bound = by_email.external_id(target)
        if external_id is not None and bound is not None and bound != external_id:
            return ConflictEntityResolution(
                candidates=(by_email,),
                matched_key=("email", by_email.email),
                reason="email_bound_to_other_id",
            )
        if by_external is not None and by_external.id != by_email.id:
            return ConflictEntityResolution(
                candidates=(by_email, by_external),
                matched_key=("external_id", str(external_id)),
                reason="external_id_bound_to_other_record",
            )
        return ResolvedEntityResolution(
            target=by_email,
            match_kind=MatchKind.EMAIL,
            matched_key=("email", by_email.email),
            reason="exact_match",
        )

    if by_external is not None:
        return ResolvedEntityResolution(
            target=by_external,
            match_kind=MatchKind.EXTERNAL_ID,
            matched_key=(target.value, str(external_id)),
            reason="exact_match",
        )

    return NewEntityResolution(reason="no_exact_match" if normalized else "missing_email")


def resolve_voucher(
    vouchers: VoucherRepository,
    *,
    pos_uuid: str | None = None,
    pos_number: int | None = None,
    storefront_code: str | None = None,
) -> EntityResolution[VoucherRecord]:
    """Resolve a voucher by any of its identifiers.

    Distinct records matching different keys mean the store already holds two
    records for one voucher; that is reported as a conflict.
    """

    lookups: list[tuple[MatchKind, str, VoucherRecord | None]] = []
    if pos_uuid:
        lookups.append(
            (MatchKind.POS_UUID, pos_uuid, vouchers.find_by_keys(pos_uuid=pos_uuid))
        )
    if pos_number is not None:
        lookups.append(
            (MatchKind.POS_NUMBER, str(pos_number), vouchers.find_by_keys(pos_number=pos_number))
        )
    if storefront_code:
        lookups.append(
            (
                MatchKind.STOREFRONT_CODE,
                storefront_code,
                vouchers.find_by_keys(storefront_code=storefront_code),
            )
        )

    matches = [(kind, key, record) for kind, key, record in lookups if record is not None]
    if not matches:
        return NewEntityResolution(reason="no_exact_match")

    candidates = _dedupe([record for _, _, record in matches])
    first_kind, first_key, _ = matches[0]
    if len(candidates) > 1:
        return ConflictEntityResolution(
            candidates=tuple(candidates),
            matched_key=(first_kind.value, first_key),
            reason="keys_match_distinct_records",
        )
    return ResolvedEntityResolution(
        target=candidates[0],
        match_kind=first_kind,
        matched_key=(first_kind.value, first_key),
        reason="exact_match",
    )


def _dedupe(records: list[VoucherRecord]) -> list[VoucherRecord]:
    seen: set[object] = set()
    unique: list[VoucherRecord] = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique
