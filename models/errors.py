"""
models/errors.py
────────────────
Error raised when a record, weight set or threshold has a malformed shape.
"""


class InvalidInputError(ValueError):
    """Input shape the scorers cannot work with (NaN weights, min > max, …)."""
