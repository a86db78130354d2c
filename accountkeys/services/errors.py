# =============================================================================
# Key Service Errors
# =============================================================================
#
# One exception per failure class of the key lifecycle. Services raise these;
# only the API layer turns them into HTTP status codes:
#
#   InvalidExpirationError → 400    KeyConflictError      → 500
#   UnauthorizedKeyError   → 401    StoreUnavailableError → 503
#   KeyNotFoundError       → 404    UserNotFoundError     → 404
# =============================================================================


class KeyServiceError(Exception):
    """Base class for every account key failure."""


class InvalidExpirationError(KeyServiceError, ValueError):
    """The requested expiration is unparsable or not strictly positive."""


class UnauthorizedKeyError(KeyServiceError):
    """
    The presented key does not resolve to an identity.

    Raised for unknown, expired, and foreign-kind keys alike so callers
    cannot tell which.
    """


class KeyNotFoundError(KeyServiceError):
    """No stored record matches the digest."""


class KeyConflictError(KeyServiceError):
    """A record with the same digest already exists. Re-issue to retry."""


class StoreUnavailableError(KeyServiceError):
    """The backing store failed. The operation was not applied."""


class UserNotFoundError(KeyServiceError):
    """The directory has no user for the given email or id."""
