"""
Crime Land Use - Exceptions

Row-level data problems (missing fields, unmatched categories, parcels that
cannot be located) never raise: those rows are excluded or passed through and
counted in the stage result. Only invalid configuration fails fast.
"""


class ConfigurationError(ValueError):
    """Raised when a parameter or column set cannot produce a valid run."""
