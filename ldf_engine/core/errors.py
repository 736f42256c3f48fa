"""Exception types for the LDF engine.

Domain conditions (a target beyond the available mass, an inversion that
cannot succeed) are reported through result flags, not these exceptions.
"""

from __future__ import annotations


class LDFError(Exception):
    """Base class for LDF engine errors."""


class InvalidParamsError(LDFError, ValueError):
    """Raised when an encoded parameter record or pool config is malformed."""


class FixedPointOverflowError(LDFError, ArithmeticError):
    """Raised when a fixed-point intermediate leaves the 256-bit range."""


class SwapMathError(LDFError):
    """Raised when a swap result violates the engine's own postconditions."""
