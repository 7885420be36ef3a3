"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Listing / reduction settings
  2xxx: Engine / cycle
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Listing / reduction settings ---

class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(1001, f"Listing not found: {listing_id}", 404)


class InvalidReductionSettingsError(AppError):
    """Configuration error: rejected at the settings boundary, Failed at evaluation."""

    def __init__(self, detail: str) -> None:
        super().__init__(1002, f"Invalid reduction settings: {detail}", 422)


class PriceNotLowerError(AppError):
    def __init__(self, new_price: object, current_price: object) -> None:
        super().__init__(
            1003,
            f"New price {new_price} must be lower than current price {current_price}",
            422,
        )


class ListingNotActiveError(AppError):
    def __init__(self, listing_id: str, status: str) -> None:
        super().__init__(1004, f"Listing {listing_id} is not active (status={status})", 422)


class ListingChangedError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(
            1005, f"Listing {listing_id} changed concurrently, retry the request", 409
        )


# --- 2xxx: Engine / cycle ---

class CycleInProgressError(AppError):
    def __init__(self) -> None:
        super().__init__(2001, "A price-reduction cycle is already running", 409)


class CycleAbortedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Price-reduction cycle aborted: {detail}", 503)


# --- 9xxx: System ---

class UnauthorizedTriggerError(AppError):
    def __init__(self, detail: str = "Invalid or missing webhook secret") -> None:
        super().__init__(9001, detail, 401)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
