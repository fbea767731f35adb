"""Exception hierarchy for the shortlink service.

Every error carries an ``error_code`` that the HTTP layer returns alongside the
message, so clients can branch on expired vs missing vs conflict.

Classes:
    ShortlinkError:
        Base class for all application-specific errors.

    InvalidUrlError, InvalidValidityError, InvalidShortcodeError:
        Raised while validating a creation request, before any store write.

    ShortcodeTakenError:
        Raised when a caller-supplied shortcode already exists.

    ShortcodeNotFoundError, ShortcodeExpiredError:
        Raised while resolving a shortcode.

    ShortcodeExhaustedError:
        Raised when the generator cannot find a free code within its attempt budget.

    StoreError, DuplicateKeyError, RecordNotFoundError, StoreUnavailableError:
        Raised by record store backends.

Example:
    >>> from shortlink.exceptions import ShortcodeExpiredError
    >>> raise ShortcodeExpiredError("Short link 'abc123' has expired")
    Traceback (most recent call last):
        ...
    shortlink.exceptions.ShortcodeExpiredError: Short link 'abc123' has expired
"""

__all__ = [
    "ShortlinkError",
    "ValidationError",
    "InvalidUrlError",
    "InvalidValidityError",
    "InvalidShortcodeError",
    "ShortcodeTakenError",
    "ShortcodeNotFoundError",
    "ShortcodeExpiredError",
    "ShortcodeExhaustedError",
    "StoreError",
    "DuplicateKeyError",
    "RecordNotFoundError",
    "StoreUnavailableError",
]


class ShortlinkError(Exception):
    """Base exception for all application-specific errors."""

    error_code = "app:shortlink_error"


class ValidationError(ShortlinkError):
    """Base exception for rejected creation requests."""

    error_code = "request:validation_error"


class InvalidUrlError(ValidationError):
    """Raised when the target URL is not a valid absolute URL."""

    error_code = "request:invalid_url"


class InvalidValidityError(ValidationError):
    """Raised when the validity period is not a positive whole number of minutes."""

    error_code = "request:invalid_validity"


class InvalidShortcodeError(ValidationError):
    """Raised when a custom shortcode violates the shortcode policy."""

    error_code = "request:invalid_shortcode"


class ShortcodeTakenError(ShortlinkError):
    """Raised when a custom shortcode is already in use."""

    error_code = "shortcode:taken"


class ShortcodeNotFoundError(ShortlinkError):
    """Raised when no record exists for a shortcode."""

    error_code = "shortcode:not_found"


class ShortcodeExpiredError(ShortlinkError):
    """Raised when a record exists but its expiry has passed."""

    error_code = "shortcode:expired"


class ShortcodeExhaustedError(ShortlinkError):
    """Raised when every generated candidate collided with an existing record."""

    error_code = "shortcode:exhausted"


class StoreError(ShortlinkError):
    """Generic base class for record store errors."""

    error_code = "store:store_error"


class DuplicateKeyError(StoreError):
    """Raised when inserting a record whose shortcode already exists."""

    error_code = "store:duplicate_key"


class RecordNotFoundError(StoreError):
    """Raised when mutating a record that does not exist."""

    error_code = "store:record_not_found"


class StoreUnavailableError(StoreError):
    """Raised when the backing store cannot be reached.

    e.g. connection issues, timeouts, driver errors.
    """

    error_code = "store:unavailable"
