"""Custom exceptions for cafe-log."""


class CafeLogError(Exception):
    """Base exception for cafe-log."""

    pass


class ValidationError(CafeLogError, ValueError):
    """Raised when a cafe record or form value breaks a field constraint."""

    pass


class CafeNotFoundError(CafeLogError, LookupError):
    """Raised when no record in the store has the requested id."""

    pass


class FormClosedError(CafeLogError):
    """Raised when a form is used after it was submitted or cancelled."""

    pass


class GeocodingError(CafeLogError):
    """Raised when the location search service cannot be reached or fails."""

    pass
