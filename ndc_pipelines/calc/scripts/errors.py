"""
Hard-error types for the NDC calculation core.

Only structurally invalid input raises. Steady-state outcomes (no catalog
match, unparseable SIG, unsupported package unit, missing assistant) are
returned as ``None`` results plus warning strings.
"""

from __future__ import annotations


class InvalidFormatError(ValueError):
    """An NDC could not be normalized to, or formatted from, 11 digits."""


class InvalidQuantityError(ValueError):
    """The computed total quantity is not a positive finite number."""


__all__ = ["InvalidFormatError", "InvalidQuantityError"]
