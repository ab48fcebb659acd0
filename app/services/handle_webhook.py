"""Webhook Handlers — apply Rye product events to the catalog.

Invariants:
    - Shopify items match on rye_variant_id, Amazon items on rye_product_id
    - PRODUCT_DELETED unlinks the item and zeroes its inventory
    - Unknown or incomplete events are acknowledged and ignored

Design Decisions:
    - Returns a short outcome string (for logs and tests) instead of raising:
      Rye retries anything but a 200, and a bad event will not get better
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import Marketplace
from app.core.rye_webhook import parse_product_deleted, parse_product_update
from app.models import Item

logger = logging.getLogger(__name__)


def _match(rye_item_id: str, marketplace: Marketplace):
    if marketplace is Marketplace.SHOPIFY:
        return Item.rye_variant_id == rye_item_id
    return Item.rye_product_id == rye_item_id


class WebhookHandlers:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def handle(self, payload: dict) -> str:
        event_type = payload.get("type")
        if event_type == "PRODUCT_UPDATED":
            return await self.product_updated(payload)
        if event_type == "PRODUCT_DELETED":
            return await self.product_deleted(payload)
        logger.info(f"Ignoring Rye event {event_type}", extra={"event_type": event_type})
        return "ignored"

    async def product_updated(self, payload: dict) -> str:
        change = parse_product_update(payload)
        if change is None:
            logger.warning("PRODUCT_UPDATED without usable product data", extra={"event_type": "PRODUCT_UPDATED"})
            return "ignored"
        result = await self.db.execute(
            update(Item)
            .where(_match(change.rye_item_id, change.marketplace))
            .values(
                price=change.price,
                is_rye_linked=change.is_available,
                inventory=change.inventory,
                last_updated=datetime.now(timezone.utc),
            ),
        )
        await self.db.commit()
        logger.info(
            f"Updated {result.rowcount} items for {change.rye_item_id}",
            extra={"event_type": "PRODUCT_UPDATED"},
        )
        return "updated" if result.rowcount else "unmatched"

    async def product_deleted(self, payload: dict) -> str:
        parsed = parse_product_deleted(payload)
        if parsed is None:
            logger.warning("PRODUCT_DELETED without usable product data", extra={"event_type": "PRODUCT_DELETED"})
            return "ignored"
        rye_item_id, marketplace = parsed
        result = await self.db.execute(
            update(Item)
            .where(_match(rye_item_id, marketplace))
            .values(
                is_rye_linked=False,
                inventory=0,
                last_updated=datetime.now(timezone.utc),
            ),
        )
        await self.db.commit()
        logger.info(
            f"Unlinked {result.rowcount} items for {rye_item_id}",
            extra={"event_type": "PRODUCT_DELETED"},
        )
        return "deleted" if result.rowcount else "unmatched"
