"""
Domain Exceptions

Typed failures raised by the service layer. Routers never build HTTP errors
for these by hand; main.create_app() registers one handler per family and
maps it to a status code:

    NotFoundError       -> 404
    ConflictError       -> 409
    RateLimitedError    -> 429
    UnauthorizedError   -> 401
    InvalidInputError   -> 400
    OperationTimeout    -> 504
    EmailDeliveryError  -> 500

Callers distinguish failures with isinstance/except clauses, never by
matching on the message text.
"""


class RottenBikesError(Exception):
    """Base class for every failure the service layer raises on purpose."""

    message = "an error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


# =============================================================================
# Not Found
# =============================================================================


class NotFoundError(RottenBikesError):
    message = "not found"


class UserNotFound(NotFoundError):
    message = "user not found"


class ReviewNotFound(NotFoundError):
    message = "review not found"


class BikeNotFound(NotFoundError):
    message = "bike not found"


# =============================================================================
# Conflict
# =============================================================================


class ConflictError(RottenBikesError):
    """A unique constraint was violated. `field` names the offending column."""

    message = "already exists"
    field: str = ""

    def __init__(self, message: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        if field is not None:
            self.field = field


class EmailAlreadyExists(ConflictError):
    message = "email already exists"
    field = "email"


class UsernameAlreadyExists(ConflictError):
    message = "username already exists"
    field = "username"


class BikeAlreadyExists(ConflictError):
    message = "bike already exists (duplicate key)"


# =============================================================================
# Rate Limited
# =============================================================================


class RateLimitedError(RottenBikesError):
    message = "too many requests"


class RateLimitExceeded(RateLimitedError):
    message = "daily magic link limit reached"


class TooFrequentReview(RateLimitedError):
    message = "you can only review this bike every 10 minutes"


# =============================================================================
# Unauthorized
# =============================================================================


class UnauthorizedError(RottenBikesError):
    message = "unauthorized"


class InvalidToken(UnauthorizedError):
    message = "invalid token"


class EmailNotVerified(UnauthorizedError):
    message = "email not verified"


class TokenExpired(UnauthorizedError):
    message = "token expired"


class MagicLinkExpired(UnauthorizedError):
    message = "token expired or already used"


# =============================================================================
# Validation
# =============================================================================


class InvalidInputError(RottenBikesError):
    message = "invalid input"


class InvalidScore(InvalidInputError):
    message = "rating score must be between 1 and 5"


# =============================================================================
# Infrastructure
# =============================================================================


class OperationTimeout(RottenBikesError):
    message = "operation timed out"


class EmailDeliveryError(RottenBikesError):
    message = "failed to send email"
