"""
Scanner job: poll Easypay for paid references.

Notifications can be lost, so the job lists the payments the gateway
registered over a trailing window and reconciles each of them. The
gateway filters the listing by calendar day, so records paid before the
window are skipped here, as are payments that are already paid.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from easypay.errors import EasypayError
from easypay.logging import get_logger, sanitize_id_for_logging
from easypay.orders.orchestrator import EasypayOrchestrator
from easypay.payments.config import Settings, get_module_settings, get_setting_value
from easypay.payments.constants import (
    FIELD_DATE,
    FIELD_TRANSACTION,
    PaymentStatus,
    SETTING_ACCOUNT_CLIENT_ID,
    SETTING_ACCOUNT_ENTITY_ID,
    SETTING_ACCOUNT_USERNAME,
)

logger = get_logger(__name__)

DEFAULT_SCAN_WINDOW_MINUTES = 60


def _scan_window() -> timedelta:
    try:
        minutes = int(os.environ.get("EASYPAY_SCAN_WINDOW_MINUTES", DEFAULT_SCAN_WINDOW_MINUTES))
    except ValueError:
        minutes = DEFAULT_SCAN_WINDOW_MINUTES
    return timedelta(minutes=max(minutes, 1))


class EasypayScanner:
    """Reconciles the payments listed by the gateway for the module account."""

    def __init__(
        self,
        orchestrator: EasypayOrchestrator,
        module_settings: Optional[Callable[[], Settings]] = None,
        window: Optional[timedelta] = None,
    ):
        self.orchestrator = orchestrator
        self._module_settings = module_settings or get_module_settings
        self.window = window or _scan_window()

    async def process(self, now: Optional[datetime] = None) -> dict[str, int]:
        """
        Run one scan.

        Gateway failures while listing payments propagate; a failure on a
        single payment is logged and counted, and the scan moves on.

        Returns:
            Dict with checked, reconciled, skipped and failed counts
        """
        now = now or datetime.now(timezone.utc)
        settings = self._module_settings()
        client_id = get_setting_value(settings, SETTING_ACCOUNT_CLIENT_ID, 0)
        username = get_setting_value(settings, SETTING_ACCOUNT_USERNAME, "")
        entity_id = get_setting_value(settings, SETTING_ACCOUNT_ENTITY_ID, 0)

        client = await self.orchestrator.registry.get(None)
        records = await client.fetch_payments(client_id, username, entity_id, now - self.window, now)

        since = now - self.window
        stats = {"checked": 0, "reconciled": 0, "skipped": 0, "failed": 0}
        for record in records:
            stats["checked"] += 1
            stats[await self._reconcile(record, client_id, username, since)] += 1

        logger.info(
            "Easypay scan finished: checked=%s, reconciled=%s, skipped=%s, failed=%s",
            stats["checked"],
            stats["reconciled"],
            stats["skipped"],
            stats["failed"],
        )
        return stats

    async def _reconcile(self, record: dict[str, Any], client_id: int, username: str, since: datetime) -> str:
        """Reconcile one listed payment; returns the stats bucket it falls in."""
        transaction_id = record.get(FIELD_TRANSACTION)
        if not transaction_id:
            logger.warning("Easypay scan: record without %s skipped", FIELD_TRANSACTION)
            return "failed"

        # The listing filter is by calendar day; trim it to the window here
        paid_at = record.get(FIELD_DATE)
        if isinstance(paid_at, datetime) and paid_at < since:
            return "skipped"

        try:
            result = await self.orchestrator.reconcile_notification(
                None,
                record.get("ep_cin") or client_id,
                record.get("ep_user") or username,
                transaction_id,
                record.get("ep_type"),
            )
        except EasypayError as e:
            logger.warning(
                "Easypay scan: payment %s not reconciled: %s", sanitize_id_for_logging(transaction_id), e
            )
            return "failed"

        if result.is_success:
            return "reconciled"
        if result.new_payment_status == PaymentStatus.PAID:
            return "skipped"
        logger.warning(
            "Easypay scan: payment %s not reconciled: %s", sanitize_id_for_logging(transaction_id), result.error
        )
        return "failed"
