"""Excepciones propias del filtro simple-python."""


class FilterError(Exception):
    """Base exception for all filter errors."""

    pass


class SetupError(FilterError):
    """Raised when the filter cannot be set up (missing code, failed pre-load)."""

    pass
