"""
ZFPE - format-preserving encryption over an integer range [0, n)

FE1/FD1 scheme (Bellare, Ristenpart, Rogaway, Stegers): a 3-round Feistel
network over a factorization n = a * b with an HMAC-SHA256 round function.
Ciphertexts stay in the same range as plaintexts, so a 9-digit number
encrypts to a 9-digit number.
"""

from .main import zfpe, cli, main
from .errors import (
    FactorizationInvariantViolation,
    FPEError,
    FPEOutcome,
    InvalidModulus,
    RangeError,
)
from .version import __version__


def encrypt(modulus: int, plaintext: int, key: str | bytes, tweak: str | bytes = b""):
    """
    FE1 encryption of one integer.

    Args:
        modulus: Size of the value space; use 1000 for numbers 0 to 999
        plaintext: Integer in [0, modulus)
        key: Secret key (str is encoded as UTF-8)
        tweak: Non-secret parameter, think of it as an IV

    Returns:
        Ciphertext in [0, modulus)

    Raises:
        InvalidModulus: modulus below 1 or wider than 128 bits
        RangeError: plaintext outside [0, modulus)
    """
    return zfpe.encrypt(modulus, plaintext, key, tweak)


def decrypt(modulus: int, ciphertext: int, key: str | bytes, tweak: str | bytes = b""):
    """
    FD1 decryption, the exact inverse of encrypt() for the same key and tweak.

    Note:
        - No authentication: a wrong key or tweak returns some other value
          in [0, modulus) instead of failing
    """
    return zfpe.decrypt(modulus, ciphertext, key, tweak)


def encrypt_checked(modulus: int, plaintext: int, key: str | bytes, tweak: str | bytes = b""):
    return zfpe.encrypt_checked(modulus, plaintext, key, tweak)


def decrypt_checked(modulus: int, ciphertext: int, key: str | bytes, tweak: str | bytes = b""):
    return zfpe.decrypt_checked(modulus, ciphertext, key, tweak)


def factor(n: int):
    return zfpe.factor(n)


__all__ = [
    "FactorizationInvariantViolation",
    "FPEError",
    "FPEOutcome",
    "InvalidModulus",
    "RangeError",
    "__version__",
    "cli",
    "decrypt",
    "decrypt_checked",
    "encrypt",
    "encrypt_checked",
    "factor",
    "main",
    "zfpe",
]
