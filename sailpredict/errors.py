"""
Errors
======

Exception types raised by the prediction core.
"""


class DataFormatError(ValueError):
    """Malformed weather grid or polar table at ingestion.

    The snapshot being built is rejected as a whole; the previously
    ingested snapshot stays authoritative. Re-fetch, don't re-parse.
    """


class OutOfRangeQuery(LookupError):
    """Wind requested outside the spatial or temporal coverage of a grid."""


class NumericInconsistencyError(RuntimeError):
    """An interpolation index escaped its clamped bounds. Never retryable."""
