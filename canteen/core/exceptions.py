"""
Custom exceptions
Typed errors for the reservation lifecycle, reporting and storage layers.

Every business-rule rejection derives from BaseApplicationError and carries an
error_code plus a details dict naming the rule that failed.  Storage failures
derive from DatabaseError and are never reported as business-rule rejections.
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """Base class for application errors"""

    error_code_default = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.error_code_default
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """Database related error"""
    error_code_default = "DATABASE_ERROR"


class StorageUnavailableError(DatabaseError):
    """The ledger store could not complete a read or write"""
    error_code_default = "STORAGE_UNAVAILABLE"


class AuthenticationError(BaseApplicationError):
    """Missing or invalid credentials"""
    error_code_default = "AUTHENTICATION_REQUIRED"


class ValidationError(BaseApplicationError):
    """Malformed input"""
    error_code_default = "VALIDATION_ERROR"


class BusinessLogicError(BaseApplicationError):
    """Business rule violation"""
    error_code_default = "BUSINESS_RULE_VIOLATION"


class DeadlinePassedError(BusinessLogicError):
    """The order or exchange cutoff for a date has elapsed"""
    error_code_default = "DEADLINE_PASSED"

    def __init__(self, cutoff: str, date: Any, message: Optional[str] = None):
        if message is None:
            if cutoff == "exchange":
                message = "It is past 12:00 on the meal date, the meal can no longer enter the exchange"
            else:
                message = "The ordering deadline for this date has passed"
        super().__init__(message, details={"cutoff": cutoff, "date": str(date)})


class AlreadyReservedError(BusinessLogicError):
    """The user already holds a reservation for the date"""
    error_code_default = "ALREADY_RESERVED"

    def __init__(self, user_id: int, date: Any):
        super().__init__(
            "You already have a meal reserved for this day",
            details={"user_id": user_id, "date": str(date)}
        )


class AlreadyInExchangeError(BusinessLogicError):
    """Release attempted on a reservation that is already released"""
    error_code_default = "ALREADY_IN_EXCHANGE"

    def __init__(self, reservation_id: int):
        super().__init__(
            "The meal is already in the exchange",
            details={"reservation_id": reservation_id}
        )


class NotInExchangeError(BusinessLogicError):
    """Claim attempted on a reservation that is not released"""
    error_code_default = "NOT_IN_EXCHANGE"

    def __init__(self, reservation_id: int):
        super().__init__(
            "The meal is not in the exchange",
            details={"reservation_id": reservation_id}
        )


class SelfClaimError(BusinessLogicError):
    """Claimant already holds the reservation"""
    error_code_default = "SELF_CLAIM"

    def __init__(self, reservation_id: int):
        super().__init__(
            "You cannot claim your own meal",
            details={"reservation_id": reservation_id}
        )


class MonthNotClosedError(BusinessLogicError):
    """Monthly report requested for a month that has not ended"""
    error_code_default = "MONTH_NOT_CLOSED"

    def __init__(self, month: str):
        super().__init__(
            "Reports are only available for months that have ended",
            details={"month": month}
        )


class NotFoundError(BaseApplicationError):
    """Referenced record does not exist"""
    error_code_default = "RESOURCE_NOT_FOUND"


class ReservationNotFoundError(NotFoundError):
    error_code_default = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id: Optional[int] = None, message: str = "Reservation not found", **details):
        if reservation_id is not None:
            details["reservation_id"] = reservation_id
        super().__init__(message, details=details)


class MealNotFoundError(NotFoundError):
    error_code_default = "MEAL_NOT_FOUND"

    def __init__(self, meal_id: int):
        super().__init__("Meal not found", details={"meal_id": meal_id})


class UserNotFoundError(NotFoundError):
    error_code_default = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        super().__init__("User not found", details={"user_id": user_id})


class ForbiddenError(BaseApplicationError):
    """Caller is not the holder or lacks the required role"""
    error_code_default = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", **details):
        super().__init__(message, details=details)
