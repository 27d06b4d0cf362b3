# Overview: Domain error taxonomy shared by services and routes.

"""
Order Core Error Taxonomy

Every rejected operation raises one of these. Callers get a stable machine
code plus a message naming the rule that failed, never a generic failure.

KINDS:
- ValidationError:    malformed input, rejected and never auto-corrected (400)
- InvariantViolation: business rule would be broken, operation is a no-op (409)
- NotFound:           unresolvable reference or tier (404)
- DependencyError:    external collaborator / persistence failure, retryable (503)
"""

from __future__ import annotations


class OrderCoreError(Exception):
    """Base class for all order core errors."""
    code = "ORDER_CORE_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "kind": self.kind,
            "retryable": self.retryable,
            "details": self.details,
        }

    @property
    def kind(self) -> str:
        for klass in (ValidationError, InvariantViolation, NotFound, DependencyError):
            if isinstance(self, klass):
                return klass.__name__
        return type(self).__name__


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(OrderCoreError, ValueError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"


class InvalidQuantity(ValidationError):
    code = "INVALID_QUANTITY"


class InvalidAmount(ValidationError):
    code = "INVALID_AMOUNT"


class InvalidMethod(ValidationError):
    code = "INVALID_METHOD"


class InvalidShippingCost(ValidationError):
    code = "INVALID_SHIPPING_COST"


class InvalidStatus(ValidationError):
    code = "INVALID_STATUS"


class InvalidPricing(ValidationError):
    code = "INVALID_PRICING"


class ParLevelExceedsOnHand(ValidationError):
    code = "PAR_LEVEL_EXCEEDS_ON_HAND"


# =============================================================================
# INVARIANTS
# =============================================================================

class InvariantViolation(OrderCoreError):
    """409-level business rule conflict."""
    code = "INVARIANT_VIOLATION"
    http_status = 409


class OrderLocked(InvariantViolation):
    code = "ORDER_LOCKED"


class OverpaymentRejected(InvariantViolation):
    code = "OVERPAYMENT_REJECTED"


class DuplicateSku(InvariantViolation):
    code = "DUPLICATE_SKU"


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFound(OrderCoreError):
    code = "NOT_FOUND"
    http_status = 404


class NoSuchTier(NotFound):
    code = "NO_SUCH_TIER"


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"


class ProductNotFound(NotFound):
    code = "PRODUCT_NOT_FOUND"


class SalesPersonNotFound(NotFound):
    code = "SALES_PERSON_NOT_FOUND"


class SellerNotFound(NotFound):
    code = "SELLER_NOT_FOUND"


class PresetNotFound(NotFound):
    code = "PRESET_NOT_FOUND"


# =============================================================================
# DEPENDENCIES
# =============================================================================

class DependencyError(OrderCoreError):
    """External collaborator or persistence failure. Safe to retry."""
    code = "DEPENDENCY_ERROR"
    http_status = 503
    retryable = True


class CommissionServiceError(DependencyError):
    code = "COMMISSION_SERVICE_ERROR"


class ConcurrencyConflict(DependencyError):
    code = "CONCURRENCY_CONFLICT"
