"""
Error types raised by the FE1/FD1 cipher.

Caller mistakes derive from `FPEError` (itself a `ValueError`) so existing
`except ValueError` handlers keep working. `FactorizationInvariantViolation`
is a `RuntimeError`: it marks an internal bug, never bad input.
"""

from __future__ import annotations

from typing import NamedTuple, Optional


class FPEError(ValueError):
    """Base class for rejected encrypt/decrypt arguments."""


class InvalidModulus(FPEError):
    """Raised when the modulus is below 1 or wider than 128 bits."""


class RangeError(FPEError):
    """Raised when a plaintext or ciphertext is outside [0, modulus)."""


class FactorizationInvariantViolation(RuntimeError):
    """Raised when the factor pair breaks a >= b >= 1."""


OUTCOME_ERRORS = (InvalidModulus, RangeError, FactorizationInvariantViolation)


class FPEOutcome(NamedTuple):
    value: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> int:
        if self.error is not None:
            raise self.error
        return self.value


__all__ = [
    "FPEError",
    "InvalidModulus",
    "RangeError",
    "FactorizationInvariantViolation",
    "FPEOutcome",
    "OUTCOME_ERRORS",
]
