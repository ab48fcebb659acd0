"""Error Hierarchy — typed, categorized exceptions for all GiftDrive failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - `details` is public (shown to clients); `context.debug_info` is shown only
      when the deployment opts in via expose_error_details

Design Decisions:
    - Single hierarchy with GiftDriveError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Oversell maps to 400 while a cart is being edited and to 409 at finalization,
      so InsufficientAvailabilityError takes the status from the caller
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cart_id: str | None = None
    rye_cart_id: str | None = None
    need_ref: str | None = None
    user_message: str | None = None
    debug_info: Any = None
    retry_after_ms: int | None = None


class GiftDriveError(Exception):
    """Base exception for all GiftDrive errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details

    def to_response(self, include_debug: bool = False) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "message": self.context.user_message or self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "cart_id": self.context.cart_id,
                "rye_cart_id": self.context.rye_cart_id,
                "need_ref": self.context.need_ref,
                "retry_after_ms": self.context.retry_after_ms,
            },
        }
        if self.details:
            body["details"] = self.details
        if include_debug and self.context.debug_info is not None:
            body["debug"] = self.context.debug_info
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidRequestError(GiftDriveError):
    """Request data is well-formed but semantically invalid."""
    def __init__(self, message: str, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
            details={"field": field} if field else None,
        )
        self.field = field


class NotAuthenticatedError(GiftDriveError):
    """Operation requires an authenticated account."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Not authenticated", "NOT_AUTHENTICATED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ResourceNotFoundError(GiftDriveError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class CartNotFoundError(GiftDriveError):
    """Shopper has no active cart."""
    def __init__(self, message: str = "No active cart found", context: ErrorContext | None = None):
        super().__init__(
            message, "CART_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


class NeedNotFoundError(GiftDriveError):
    """Item need is missing, inactive, or not linked to a catalog item."""
    def __init__(
        self, need_ref: str, reason: str = "not found or inactive",
        http_status: int = 404, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.need_ref = need_ref
        super().__init__(
            f"Item need {need_ref} {reason}",
            "NEED_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, http_status,
        )


class CartLineNotFoundError(GiftDriveError):
    """No mirror row matches the remote cart line."""
    def __init__(self, rye_item_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Item '{rye_item_id}' not found in your cart",
            "CART_LINE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class AmbiguousCartLineError(GiftDriveError):
    """One remote line serves several needs and the request did not pick one."""
    def __init__(self, rye_item_id: str, need_refs: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Item '{rye_item_id}' serves several needs; specify which one to update",
            "AMBIGUOUS_CART_LINE", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
            details={"need_refs": need_refs},
        )


class InsufficientAvailabilityError(GiftDriveError):
    """Requested quantity would push purchases past the needed quantity."""
    def __init__(
        self,
        item_name: str | None,
        requested: int,
        available: int,
        needed: int,
        purchased: int,
        need_ref: str | None = None,
        item_id: str | None = None,
        http_status: int = 400,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.need_ref = need_ref
        label = f'"{item_name}"' if item_name else "item"
        super().__init__(
            f"Requested quantity ({requested}) for {label} exceeds available stock "
            f"({available}). Max Needed: {needed}, Already Purchased: {purchased}.",
            "INSUFFICIENT_AVAILABILITY", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ctx, http_status,
            details={
                "item_id": item_id,
                "item_name": item_name,
                "requested": requested,
                "available": available,
                "needed": needed,
                "purchased": purchased,
            },
        )
        self.requested = requested
        self.available = available


class CheckoutValidationError(GiftDriveError):
    """Cart no longer passes availability checks; nothing was submitted."""
    def __init__(self, issues: list[dict], context: ErrorContext | None = None):
        super().__init__(
            "Some items in the cart exceed the remaining need",
            "CHECKOUT_VALIDATION_FAILED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
            details={"issues": issues},
        )
        self.issues = issues


class EmptyCartError(GiftDriveError):
    """Local mirror is empty where items are required."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CART_EMPTY", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class CartOwnershipError(GiftDriveError):
    """Cart belongs to a different account."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Cart does not belong to the current user",
            "CART_FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class CartStatusConflictError(GiftDriveError):
    """Cart is no longer active."""
    def __init__(self, status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cart status is '{status}'. Cannot finalize order again.",
            "CART_NOT_ACTIVE", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.status = status


class BuyerIdentityError(GiftDriveError):
    """Shipping/buyer identity cannot be built or was rejected."""
    def __init__(self, message: str, rye_error_code: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, rye_error_code or "BUYER_IDENTITY_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class SubmissionFailedError(GiftDriveError):
    """Every store in the remote cart failed to submit."""
    def __init__(self, failed_stores: list[dict], context: ErrorContext | None = None):
        super().__init__(
            "No store in the cart could be submitted",
            "SUBMISSION_FAILED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 402,
            details={"failed_stores": failed_stores},
        )


class WebhookSignatureError(GiftDriveError):
    """Webhook request failed authentication."""
    def __init__(self, message: str, http_status: int, context: ErrorContext | None = None):
        super().__init__(
            message, "WEBHOOK_SIGNATURE_INVALID", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, http_status,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(GiftDriveError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class RyeAPIError(GiftDriveError):
    """Rye commerce API call failed.

    `rye_error_code` keeps the remote code (e.g. CART_EXPIRED_ERROR) so callers
    can branch on it; `http_status` is what this service answers with.
    """
    def __init__(
        self,
        message: str,
        rye_error_code: str,
        http_status: int = 502,
        retry_after_ms: int | None = None,
        remote_errors: Any = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        if remote_errors is not None:
            ctx.debug_info = remote_errors
        severity = (
            ErrorSeverity.CRITICAL if http_status >= 500 else ErrorSeverity.ERROR
        )
        category = (
            ErrorCategory.TIMEOUT if rye_error_code == "RYE_TIMEOUT"
            else ErrorCategory.EXTERNAL_API
        )
        super().__init__(
            f"Rye API error ({rye_error_code}): {message}",
            rye_error_code, category, severity, ctx, http_status,
        )
        self.rye_error_code = rye_error_code

    @property
    def is_cart_gone(self) -> bool:
        """Remote cart expired or no longer exists."""
        return (
            self.rye_error_code == "CART_EXPIRED_ERROR"
            or "NOT_FOUND" in self.rye_error_code
            or self.http_status in (404, 410)
        )
