"""Cart Handlers — keep the remote Rye cart and the local mirror in step.

Invariants:
    - Reserving writes (add, update with quantity > 0) lock the need row before
      reading purchased, and check in-cart + requested against availability
    - The remote call happens inside the local transaction: any remote failure
      rolls the mirror back, the mirror is committed only after Rye accepted
    - A remote cart that is gone (expired, not found) or empty marks the local
      cart abandoned; the shopper sees "no cart"
    - Responses are always the remote cart augmented from the mirror

Design Decisions:
    - Handler class with db + rye: explicit dependencies, no globals
    - Handlers commit themselves: a remote side effect sits between the locking
      read and the write, so the route cannot own the boundary
    - Submission finalizes only the lines of stores that succeeded; if every
      store failed the cart stays active and can be retried
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.availability import availability_issue, ensure_available
from app.core.buyer_identity import ShippingOrganization, build_buyer_identity
from app.core.cart_augmentation import augment_cart
from app.core.domain_types import CartStatus, LineKey, Marketplace, NeedRef
from app.core.errors import (
    AmbiguousCartLineError, BuyerIdentityError, CartLineNotFoundError,
    CartNotFoundError, CheckoutValidationError, EmptyCartError, ErrorContext,
    NeedNotFoundError, RyeAPIError, SubmissionFailedError,
)
from app.core.marketplace import cart_items_input, delete_items_input, is_cart_empty
from app.core.submission import partition_submission, successful_line_keys
from app.infrastructure.rye_client import ResilientRyeClient
from app.models import Cart, CartContent, Drive, Organization
from app.services.cart_mirror import CartMirror
from app.services.checkout_finalizer import (
    CheckoutFinalizer, FinalizeInput, require_guest_details,
)
from app.services.need_ledger import NeedLedger, need_ref_of
from app.services.shopper_cart import (
    Shopper, cart_context, find_active_cart, new_guest_token,
)

logger = logging.getLogger(__name__)


@dataclass
class AddResult:
    cart: dict
    created: bool
    guest_token: str | None = None


@dataclass
class SubmitResult:
    order: dict
    failed_stores: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"order": self.order, "failed_stores": self.failed_stores}


def _pick_row(
    rows: list[CartContent], ref: NeedRef | None, key: LineKey, ctx: ErrorContext,
) -> CartContent:
    """The mirror row an update applies to."""
    if ref is not None:
        for row in rows:
            if need_ref_of(row.source_drive_item_id, row.source_child_item_id) == ref:
                return row
        raise CartLineNotFoundError(key.rye_item_id, ctx)
    if len(rows) > 1:
        refs = [
            str(need_ref_of(row.source_drive_item_id, row.source_child_item_id))
            for row in rows
        ]
        raise AmbiguousCartLineError(key.rye_item_id, refs, ctx)
    return rows[0]


class CartHandlers:
    """Cart operations for one shopper request."""

    def __init__(self, db: AsyncSession, rye: ResilientRyeClient, receipt_email_domain: str = "giftdrive.org"):
        self.db = db
        self.rye = rye
        self.ledger = NeedLedger(db)
        self.mirror = CartMirror(db)
        self.receipt_email_domain = receipt_email_domain

    # ─── Shared helpers ──────────────────────────────────────────

    async def _require_cart(self, shopper: Shopper) -> Cart:
        cart = await find_active_cart(self.db, shopper)
        if cart is None:
            raise CartNotFoundError()
        return cart

    async def _abandon(self, cart: Cart, reason: str) -> None:
        cart.status = CartStatus.ABANDONED.value
        await self.db.commit()
        logger.info(
            f"Cart marked abandoned: {reason}",
            extra={"cart_id": str(cart.id), "rye_cart_id": cart.rye_cart_id},
        )

    async def _respond(self, cart: Cart, remote_cart: dict | None) -> dict | None:
        """Augmented remote cart, or None (and abandoned) when it is empty."""
        if is_cart_empty(remote_cart):
            await self._abandon(cart, "remote cart is empty")
            return None
        rows = await self.mirror.display_rows(cart.id)
        return augment_cart(remote_cart, rows)

    async def _rollback_on_error(self, operation):
        try:
            return await operation()
        except Exception:
            await self.db.rollback()
            raise

    # ─── Read ────────────────────────────────────────────────────

    async def get_cart(self, shopper: Shopper) -> dict | None:
        cart = await find_active_cart(self.db, shopper)
        if cart is None:
            return None
        ctx = cart_context(cart)
        try:
            remote_cart = await self.rye.get_cart(
                cart.rye_cart_id, shopper_ip=shopper.ip, context=ctx,
            )
        except RyeAPIError as e:
            if not e.is_cart_gone:
                raise
            await self._abandon(cart, e.rye_error_code)
            return None
        if remote_cart is None:
            await self._abandon(cart, "remote cart not found")
            return None
        return await self._respond(cart, remote_cart)

    # ─── Add ─────────────────────────────────────────────────────

    async def add_item(
        self,
        shopper: Shopper,
        rye_item_id: str,
        marketplace: Marketplace,
        quantity: int,
        ref: NeedRef,
    ) -> AddResult:
        return await self._rollback_on_error(
            lambda: self._add_item(shopper, rye_item_id, marketplace, quantity, ref),
        )

    async def _add_item(
        self,
        shopper: Shopper,
        rye_item_id: str,
        marketplace: Marketplace,
        quantity: int,
        ref: NeedRef,
    ) -> AddResult:
        key = LineKey(marketplace, rye_item_id)
        need = await self.ledger.load_need(ref, lock=True)
        if need is None:
            raise NeedNotFoundError(str(ref))
        if need.item_id is None:
            raise NeedNotFoundError(str(ref), "is not linked to a catalog item")
        availability = await self.ledger.availability(need)

        def check(in_cart: int) -> None:
            ensure_available(
                availability, in_cart + quantity,
                item_name=need.item_name, item_id=str(need.item_id), need_ref=str(ref),
            )

        cart = await find_active_cart(self.db, shopper)
        existing = None
        in_cart = 0
        if cart is not None:
            existing = await self.mirror.find_for_need(cart.id, ref, key)
            in_cart = await self.mirror.quantity_for_need(cart.id, ref)
        check(in_cart)

        items = cart_items_input(marketplace, rye_item_id, quantity)
        remote_cart = None
        if cart is not None:
            ctx = cart_context(cart)
            try:
                remote_cart = await self.rye.add_cart_items(
                    cart.rye_cart_id, items, shopper_ip=shopper.ip, context=ctx,
                )
            except RyeAPIError as e:
                if not e.is_cart_gone:
                    raise
                logger.warning(
                    f"Remote cart gone ({e.rye_error_code}), starting a new one",
                    extra={"cart_id": str(cart.id), "rye_cart_id": cart.rye_cart_id},
                )
                cart.status = CartStatus.ABANDONED.value
                cart = None
                existing = None
                # the replacement cart starts empty
                check(0)

        created = cart is None
        guest_token = None
        if cart is None:
            remote_cart = await self.rye.create_cart(
                items, shopper_ip=shopper.ip, context=ErrorContext(need_ref=str(ref)),
            )
            if shopper.is_guest:
                guest_token = new_guest_token()
            cart = Cart(
                account_id=shopper.account_id,
                guest_session_token=guest_token,
                rye_cart_id=remote_cart["id"],
                status=CartStatus.ACTIVE.value,
            )
            self.db.add(cart)
            await self.db.flush()

        if existing is not None:
            existing.quantity += quantity
        else:
            self.db.add(CartContent(
                cart_id=cart.id,
                item_id=need.item_id,
                drive_id=need.drive_id,
                child_id=need.child_id,
                quantity=quantity,
                source_drive_item_id=need.source_drive_item_id,
                source_child_item_id=need.source_child_item_id,
                marketplace=marketplace.value,
                rye_item_id=rye_item_id,
            ))
        await self.db.commit()
        logger.info(
            f"Added {quantity} x {rye_item_id} for {ref}",
            extra={"cart_id": str(cart.id), "rye_cart_id": cart.rye_cart_id, "need_ref": str(ref)},
        )

        rows = await self.mirror.display_rows(cart.id)
        return AddResult(augment_cart(remote_cart, rows), created, guest_token)

    # ─── Update / Remove ─────────────────────────────────────────

    async def update_item(
        self,
        shopper: Shopper,
        rye_item_id: str,
        marketplace: Marketplace,
        quantity: int,
        ref: NeedRef | None = None,
    ) -> dict | None:
        return await self._rollback_on_error(
            lambda: self._update_item(shopper, rye_item_id, marketplace, quantity, ref),
        )

    async def _update_item(
        self,
        shopper: Shopper,
        rye_item_id: str,
        marketplace: Marketplace,
        quantity: int,
        ref: NeedRef | None,
    ) -> dict | None:
        cart = await self._require_cart(shopper)
        ctx = cart_context(cart)
        key = LineKey(marketplace, rye_item_id)
        rows = await self.mirror.rows_for_line(cart.id, key)
        if not rows:
            raise CartLineNotFoundError(rye_item_id, ctx)
        target = _pick_row(rows, ref, key, ctx)
        others = sum(row.quantity for row in rows if row is not target)

        if quantity > 0:
            target_ref = need_ref_of(target.source_drive_item_id, target.source_child_item_id)
            if target_ref is not None:
                need = await self.ledger.load_need(target_ref, lock=True)
                if need is None:
                    raise NeedNotFoundError(str(target_ref), context=ctx)
                availability = await self.ledger.availability(need)
                in_cart = await self.mirror.quantity_for_need(cart.id, target_ref)
                ensure_available(
                    availability, in_cart - target.quantity + quantity,
                    item_name=need.item_name, item_id=str(target.item_id),
                    need_ref=str(target_ref),
                )

        line_total = others + quantity
        if line_total == 0:
            remote_cart = await self.rye.delete_cart_items(
                cart.rye_cart_id, delete_items_input(marketplace, rye_item_id),
                shopper_ip=shopper.ip, context=ctx,
            )
        else:
            remote_cart = await self.rye.update_cart_items(
                cart.rye_cart_id, cart_items_input(marketplace, rye_item_id, line_total),
                shopper_ip=shopper.ip, context=ctx,
            )

        if quantity == 0:
            await self.db.delete(target)
        else:
            target.quantity = quantity
        await self.db.commit()
        logger.info(
            f"Updated {rye_item_id} to {quantity} (line total {line_total})",
            extra={"cart_id": str(cart.id), "rye_cart_id": cart.rye_cart_id},
        )
        return await self._respond(cart, remote_cart)

    async def remove_item(
        self, shopper: Shopper, rye_item_id: str, marketplace: Marketplace,
    ) -> dict | None:
        return await self._rollback_on_error(
            lambda: self._remove_item(shopper, rye_item_id, marketplace),
        )

    async def _remove_item(
        self, shopper: Shopper, rye_item_id: str, marketplace: Marketplace,
    ) -> dict | None:
        cart = await self._require_cart(shopper)
        ctx = cart_context(cart)
        remote_cart = await self.rye.delete_cart_items(
            cart.rye_cart_id, delete_items_input(marketplace, rye_item_id),
            shopper_ip=shopper.ip, context=ctx,
        )
        rows = await self.mirror.rows_for_line(cart.id, LineKey(marketplace, rye_item_id))
        if not rows:
            logger.warning(
                f"Removed {rye_item_id} remotely but no mirror row matched",
                extra={"cart_id": str(cart.id), "rye_cart_id": cart.rye_cart_id},
            )
        for row in rows:
            await self.db.delete(row)
        await self.db.commit()
        return await self._respond(cart, remote_cart)

    # ─── Checkout ────────────────────────────────────────────────

    async def validate_checkout(self, shopper: Shopper) -> dict:
        """{is_valid, issues} for every need of the active cart, lines summed per need."""
        cart = await self._require_cart(shopper)
        requested: dict[NeedRef, int] = {}
        firsts = {}
        for line in await self.mirror.lines(cart.id):
            row = line.content
            ref = need_ref_of(row.source_drive_item_id, row.source_child_item_id)
            if ref is None:
                logger.warning(
                    "Mirror row without a source need skipped in validation",
                    extra={"cart_id": str(cart.id)},
                )
                continue
            requested[ref] = requested.get(ref, 0) + row.quantity
            firsts.setdefault(ref, line)

        issues = []
        for ref, quantity in requested.items():
            line = firsts[ref]
            need = await self.ledger.load_need(ref)
            if need is None:
                issues.append({
                    "item_id": str(line.content.item_id),
                    "item_name": line.item_name,
                    "need_ref": str(ref),
                    "error": "Original item need not found or is no longer active.",
                    "requested": quantity,
                    "available": 0,
                })
                continue
            availability = await self.ledger.availability(need)
            issue = availability_issue(
                availability, quantity,
                item_id=str(line.content.item_id), item_name=line.item_name, need_ref=str(ref),
            )
            if issue:
                issues.append(issue)
        return {"is_valid": not issues, "issues": issues}

    async def _shipping_organization(self, cart: Cart) -> ShippingOrganization:
        drive_ids = select(CartContent.drive_id).where(CartContent.cart_id == cart.id)
        org = (await self.db.execute(
            select(Organization)
            .join(Drive, Drive.org_id == Organization.id)
            .where(Drive.id.in_(drive_ids))
            .limit(1),
        )).scalar_one_or_none()
        if org is None:
            raise BuyerIdentityError(
                "Could not determine the recipient organization for this cart.",
            )
        return ShippingOrganization(
            org_id=str(org.id),
            name=org.name,
            address=org.address,
            address2=org.address2,
            city=org.city,
            state=org.state,
            zip_code=org.zip_code,
            country=org.country,
            phone=org.phone,
        )

    async def update_buyer_identity(
        self,
        shopper: Shopper,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> dict | None:
        cart = await self._require_cart(shopper)
        ctx = cart_context(cart)
        org = await self._shipping_organization(cart)
        identity = build_buyer_identity(
            org,
            is_guest=shopper.is_guest,
            first_name=first_name,
            last_name=last_name,
            email=email,
            receipt_email_domain=self.receipt_email_domain,
        )
        try:
            remote_cart = await self.rye.update_buyer_identity(
                cart.rye_cart_id, identity, shopper_ip=shopper.ip, context=ctx,
            )
        except RyeAPIError as e:
            if e.rye_error_code.startswith("BUYER_IDENTITY"):
                raise BuyerIdentityError(e.message, e.rye_error_code, ctx) from e
            raise
        return await self._respond(cart, remote_cart)

    async def submit(
        self,
        shopper: Shopper,
        payment_token: str,
        guest_first_name: str | None = None,
        guest_last_name: str | None = None,
        guest_email: str | None = None,
    ) -> SubmitResult:
        require_guest_details(shopper, guest_first_name, guest_last_name, guest_email)
        cart = await self._require_cart(shopper)
        ctx = cart_context(cart)

        snapshot = await self.rye.get_cart(
            cart.rye_cart_id, shopper_ip=shopper.ip, context=ctx,
        )
        if is_cart_empty(snapshot):
            raise EmptyCartError("Cart has no items to submit", ctx)
        validation = await self.validate_checkout(shopper)
        if not validation["is_valid"]:
            raise CheckoutValidationError(validation["issues"], ctx)
        # release the snapshot transaction before the long remote call;
        # the rollback expires `cart`, only the ids held by ctx are used below
        await self.db.rollback()

        submitted = await self.rye.submit_cart(
            ctx.rye_cart_id, payment_token, shopper_ip=shopper.ip, context=ctx,
        )
        outcome = partition_submission(submitted)
        failed = [f.to_dict() for f in outcome.failed]
        if not outcome.any_succeeded:
            logger.error(
                f"Submission failed for all {len(failed)} stores",
                extra={"cart_id": ctx.cart_id, "rye_cart_id": ctx.rye_cart_id},
            )
            raise SubmissionFailedError(failed, ctx)
        if failed:
            logger.warning(
                f"Partial submission: {len(failed)} stores failed",
                extra={"cart_id": ctx.cart_id, "rye_cart_id": ctx.rye_cart_id},
            )

        total = ((snapshot.get("cost") or {}).get("total") or {})
        result = await CheckoutFinalizer(self.db).finalize(
            shopper,
            FinalizeInput(
                rye_cart_id=ctx.rye_cart_id,
                rye_order_ids=outcome.rye_order_ids,
                amount_in_cents=int(total.get("value") or 0),
                currency=total.get("currency") or "USD",
                guest_first_name=guest_first_name,
                guest_last_name=guest_last_name,
                guest_email=guest_email,
            ),
            line_filter=successful_line_keys(snapshot, outcome),
        )
        return SubmitResult(result.to_dict(), failed)
