"""
Custom Exception Classes for the Application
Provides a unified error handling system with proper HTTP status codes and messages.

Domain errors raised by the reward and marketplace core live next to the generic
authentication/resource/validation errors so routers never translate them by hand.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """
    Base exception class for all application exceptions.
    Provides consistent error response format.
    """

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "error_code": error_code,
                "message": message,
                "details": self.details,
            },
            headers=headers,
        )


# ==================== Authentication Exceptions ====================


class AuthenticationException(AppException):
    """Base class for authentication-related exceptions."""

    def __init__(
        self,
        error_code: str = "authentication_failed",
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            message=message,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsException(AuthenticationException):
    """Raised when user provides invalid credentials."""

    def __init__(self):
        super().__init__(
            error_code="invalid_credentials",
            message="Invalid email or password",
        )


class InvalidTokenException(AuthenticationException):
    """Raised when authentication token is invalid or expired."""

    def __init__(self):
        super().__init__(
            error_code="invalid_token",
            message="Invalid authentication token",
        )


# ==================== Authorization Exceptions ====================


class PermissionDeniedException(AppException):
    """Raised when the actor doesn't have permission to perform an action."""

    def __init__(
        self, message: str = "You don't have permission to perform this action"
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="permission_denied",
            message=message,
        )


class GuestNotAllowedException(PermissionDeniedException):
    """Raised when a guest tries a marketplace or messaging action."""

    def __init__(self):
        super().__init__(message="Sign in to use the marketplace")


# ==================== Resource Exceptions ====================


class ResourceNotFoundException(AppException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        details = {}
        if identifier is not None:
            details["identifier"] = str(identifier)

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="resource_not_found",
            message=f"{resource} not found",
            details=details,
        )


class ResourceAlreadyExistsException(AppException):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, resource: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="resource_already_exists",
            message=f"{resource} already exists",
            details=details,
        )


# ==================== Validation Exceptions ====================


class ValidationException(AppException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="validation_error",
            message=message,
            details=details,
        )


# ==================== Scan Exceptions ====================


class InvalidDisposalChoice(AppException):
    """Raised when a disposal choice is not offered for the item's category."""

    def __init__(self, category: str, choice: str, allowed: Optional[List[str]] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="invalid_disposal_choice",
            message=f"'{choice}' is not a valid disposal choice for {category} items",
            details={
                "category": category,
                "choice": choice,
                "allowed": allowed or [],
            },
        )


class StaleTransition(AppException):
    """Raised when a state change is no longer valid for the record's current status."""

    def __init__(
        self,
        resource: str,
        identifier: Any,
        current_status: Optional[str] = None,
        message: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"resource": resource, "identifier": str(identifier)}
        if current_status is not None:
            details["current_status"] = current_status
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="stale_transition",
            message=message or f"{resource} can no longer make this transition",
            details=details,
        )


# ==================== Marketplace Exceptions ====================


class InsufficientFunds(AppException):
    """Raised when a debit would overdraw the account."""

    def __init__(self, required: int, available: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="insufficient_funds",
            message="Not enough points to complete this operation",
            details={"required": required, "available": available},
        )


class ListingUnavailable(AppException):
    """Raised when a listing is not active anymore, typically after losing a purchase race."""

    def __init__(self, listing_id: Any, current_status: Optional[str] = None):
        details: Dict[str, Any] = {"listing_id": str(listing_id)}
        if current_status is not None:
            details["current_status"] = current_status
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="listing_unavailable",
            message="This listing is no longer available",
            details=details,
        )


class NotOwnListing(AppException):
    """Raised when a buyer targets their own listing."""

    def __init__(self, listing_id: Any):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="not_own_listing",
            message="You cannot buy your own listing",
            details={"listing_id": str(listing_id)},
        )


class ComplianceRejected(AppException):
    """Raised when the compliance gate refuses a listing submission."""

    def __init__(self, risk_score: int, violations: List[str]):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="compliance_rejected",
            message="Listing was rejected by the compliance check",
            details={"risk_score": risk_score, "violations": violations},
        )


# ==================== Migration Exceptions ====================


class MigrationPartialFailure(AppException):
    """Raised when guest migration is interrupted; nothing was applied and it can be retried."""

    def __init__(self, device_id: str, reason: Optional[str] = None):
        details = {"device_id": device_id, "retriable": True}
        if reason:
            details["reason"] = reason
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="migration_partial_failure",
            message="Guest data could not be migrated. Please try again.",
            details=details,
        )


# ==================== External Service Exceptions ====================


class ExternalServiceException(AppException):
    """Raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="external_service_error",
            message=message or f"{service_name} service is currently unavailable",
            details={"service": service_name},
        )


class ClassificationUnavailable(ExternalServiceException):
    """Raised when the classifier cannot be reached or answers with an error."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            "classification",
            message or "Item recognition is temporarily unavailable. Please retry.",
        )
        self.error_code = "classification_unavailable"
        self.detail["error_code"] = self.error_code


# ==================== Helper Functions ====================


def raise_not_found(resource: str, identifier: Optional[Any] = None):
    """Helper function to raise ResourceNotFoundException."""
    raise ResourceNotFoundException(resource, identifier)
