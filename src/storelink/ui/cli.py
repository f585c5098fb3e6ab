from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from storelink.adapters.prohandel import ProHandelClient
from storelink.adapters.shopify import ShopifyClient
from storelink.adapters.sqlalchemy import IdentityStore
from storelink.app import (
    handle_webhook,
    reconcile_customer_batch,
    reconcile_voucher_issuance_and_redemption,
    summarize_store,
)
from storelink.config import MissingConfigurationError, configure_logging
from storelink.domain.webhooks import WebhookDelivery

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from storelink.domain.ports import PosGateway, StorefrontGateway
    from storelink.domain.reconciliation import ReconciliationResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile Shopify customers and vouchers with ProHandel"
    )
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy URI of the identity store (defaults to config)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    customers = subparsers.add_parser("customers", help="Sync all storefront customers")
    customers.add_argument(
        "--max-pages",
        type=int,
        help="Maximum number of customer pages to fetch before stopping",
    )

    vouchers = subparsers.add_parser(
        "vouchers", help="Import POS vouchers and apply POS redemptions"
    )
    vouchers.add_argument(
        "--lookback-minutes",
        type=float,
        help="Relative lookback window in minutes (defaults to config)",
    )

    webhook = subparsers.add_parser("webhook", help="Replay a storefront webhook delivery")
    webhook.add_argument(
        "--topic",
        type=str,
        required=True,
        help="Webhook topic, e.g. orders/paid or CUSTOMERS_UPDATE",
    )
    webhook.add_argument(
        "--shop",
        type=str,
        help="Shop domain the delivery came from",
    )
    webhook.add_argument(
        "--payload",
        type=Path,
        required=True,
        help="Path to the JSON payload of the delivery",
    )

    subparsers.add_parser("status", help="Show customer and voucher counts")

    return parser.parse_args(list(argv))


def _lookback(args: argparse.Namespace) -> timedelta | None:
    if args.lookback_minutes is None:
        return None
    if args.lookback_minutes <= 0:
        raise ValueError("Lookback minutes must be positive")
    return timedelta(minutes=args.lookback_minutes)


def _load_payload(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read webhook payload {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Webhook payload {path} must be a JSON object")
    return payload


def _optional_pos() -> PosGateway | None:
    try:
        return ProHandelClient()
    except MissingConfigurationError:
        log.warning("ProHandel is not configured; order vouchers will not be mirrored")
        return None


def _optional_storefront() -> StorefrontGateway | None:
    try:
        return ShopifyClient()
    except MissingConfigurationError:
        log.warning("Shopify is not configured; purchased vouchers get no gift card yet")
        return None


def _report(result: ReconciliationResult) -> None:
    log.info("Result: %s", json.dumps(result.to_dict(), sort_keys=True))
    if not result.success:
        raise RuntimeError(result.error or "Reconciliation failed")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    delivery: WebhookDelivery | None = None
    lookback: timedelta | None = None
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "vouchers":
            lookback = _lookback(parsed_args)
        elif parsed_args.command == "webhook":
            delivery = WebhookDelivery(
                topic=parsed_args.topic,
                shop=parsed_args.shop,
                payload=_load_payload(parsed_args.payload),
            )
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        with IdentityStore.open(database_uri=parsed_args.database_uri) as store:
            if parsed_args.command == "customers":
                _report(reconcile_customer_batch(store=store, max_pages=parsed_args.max_pages))
            elif parsed_args.command == "vouchers":
                _report(reconcile_voucher_issuance_and_redemption(store=store, lookback=lookback))
            elif parsed_args.command == "webhook" and delivery is not None:
                _report(
                    handle_webhook(
                        delivery,
                        store=store,
                        pos=_optional_pos(),
                        storefront=_optional_storefront(),
                    )
                )
            elif parsed_args.command == "status":
                summary = summarize_store(store=store)
                log.info("Store status: %s", json.dumps(summary.to_dict(), sort_keys=True))
            else:
                raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
