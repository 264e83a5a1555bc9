"""Custom exceptions for the Ziwei Doushu API."""


class ZiweiAPIException(Exception):
    """Base exception for all API errors."""
    pass


class InvalidDateTimeError(ZiweiAPIException):
    """Raised when a birth date or time is invalid."""
    pass


class InvalidDateError(InvalidDateTimeError):
    """Raised when a date string cannot be parsed or is outside the calendar range."""
    pass


class InvalidPalaceError(ZiweiAPIException):
    """Raised when a palace name is not one of the twelve palaces."""
    pass


class ChartCalculationError(ZiweiAPIException):
    """Raised when chart calculation fails."""
    pass


class ChartPrimitiveError(ChartCalculationError):
    """Raised when the star placement library cannot build a chart."""
    pass


class AlmanacError(ZiweiAPIException):
    """Raised when an almanac lookup fails."""
    pass
