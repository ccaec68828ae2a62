# ZFPE FORMAT-PRESERVING ENCRYPTION ENGINE ->

import os as _os_module

from .errors import (
    FactorizationInvariantViolation,
    FPEOutcome,
    InvalidModulus,
    OUTCOME_ERRORS,
    RangeError,
)


class zfpe:
    import functools
    import math
    import operator
    import sys
    import time
    import typing
    import numpy as np
    from cryptography.hazmat.primitives import hashes
    from cryptography.hazmat.primitives import hmac

    @staticmethod
    def _env_int(name: str) -> "zfpe.typing.Optional[int]":
        value = _os_module.getenv(name)
        if not value:
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return None
        if parsed <= 0:
            return None
        return parsed

    ENGINE_VERSION = "1.0.0"
    MAX_N_BYTES = 128 // 8  # FPE is for SSNs, card numbers and the like
    MAX_PRIME = 65535
    MAX_TWEAK_BYTES = 255
    ROUNDS = 3
    SELFTEST_KEY = "Here is my secret key"
    SELFTEST_TWEAK = "Here is my tweak"
    SELFTEST_RANGE = 10_000
    SELFTEST_MAX_RANGE = 1 << 32
    PROGRESS_EVERY = 1_000
    _SELFTEST_RANGE_ENV = _env_int("ZFPE_SELFTEST_RANGE")
    if _SELFTEST_RANGE_ENV is not None:
        SELFTEST_RANGE = _SELFTEST_RANGE_ENV
    _PROGRESS_EVERY_ENV = _env_int("ZFPE_PROGRESS_EVERY")
    if _PROGRESS_EVERY_ENV is not None:
        PROGRESS_EVERY = _PROGRESS_EVERY_ENV
    _SILENT_MODE: typing.ClassVar[bool] = False

    # ---------- argument handling -----------------------------------------

    @staticmethod
    def _coerce_bytes(
        value: "zfpe.typing.Union[str, bytes, bytearray, memoryview]",
        label: str = "key"
    ) -> bytes:
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise TypeError(f"Unsupported {label} type: {type(value)!r}")

    @staticmethod
    def _coerce_key(key) -> bytes:
        key_bytes = zfpe._coerce_bytes(key, "key")
        if not key_bytes:
            raise ValueError("Key required for FPE encryption")
        return key_bytes

    @staticmethod
    def _coerce_tweak(tweak) -> bytes:
        tweak_bytes = zfpe._coerce_bytes(tweak, "tweak")
        if len(tweak_bytes) > zfpe.MAX_TWEAK_BYTES:
            raise ValueError(f"Tweak too long ({len(tweak_bytes)} bytes, max {zfpe.MAX_TWEAK_BYTES})")
        return tweak_bytes

    @staticmethod
    def _coerce_int(value, label: str) -> int:
        if isinstance(value, bool):
            raise TypeError(f"{label} must be an integer, not bool")
        try:
            return zfpe.operator.index(value)
        except TypeError:
            raise TypeError(f"{label} must be an integer, not {type(value).__name__}") from None

    @staticmethod
    def _check_modulus(modulus) -> int:
        n = zfpe._coerce_int(modulus, "modulus")
        if n < 1:
            raise InvalidModulus(f"Modulus must be at least 1 (got {n})")
        if (n.bit_length() + 7) // 8 > zfpe.MAX_N_BYTES:
            raise InvalidModulus(
                f"N is too large for FPE encryption ({n.bit_length()} bits, max {zfpe.MAX_N_BYTES * 8})"
            )
        return n

    @staticmethod
    def _check_value(value, n: int, label: str) -> int:
        x = zfpe._coerce_int(value, label)
        if not 0 <= x < n:
            raise RangeError(f"{label} {x} outside [0, {n})")
        return x

    # ---------- factorization ---------------------------------------------

    @staticmethod
    @functools.lru_cache(maxsize=1)
    def _small_primes() -> "zfpe.typing.Tuple[int, ...]":
        # The scan steps to the next prime before checking the bound, so the
        # first prime above MAX_PRIME (65537) is tested as well.
        limit = zfpe.MAX_PRIME + 64
        sieve = zfpe.np.ones(limit + 1, dtype=bool)
        sieve[:2] = False
        for i in range(2, zfpe.math.isqrt(limit) + 1):
            if sieve[i]:
                sieve[i * i::i] = False
        primes = zfpe.np.flatnonzero(sieve)
        cut = int(zfpe.np.searchsorted(primes, zfpe.MAX_PRIME, side="right"))
        return tuple(int(p) for p in primes[:cut + 1])

    @staticmethod
    def _low_zero_bits(n: int) -> int:
        if n <= 0:
            return 0
        return (n & -n).bit_length() - 1

    @staticmethod
    def factor(n: int) -> "zfpe.typing.Tuple[int, int]":
        """
        Factor n into a and b which are as close together as possible.

        Assumes n is composed mostly of small factors, which is the case for
        typical uses of FPE (n is usually a power of 10). Once both sides hold
        a factor the prime scan stops and whatever is left of n, prime or not,
        is folded into the smaller side. Balance is therefore only good when
        n's remaining factors are small or absent.

        Returns (a, b) with a * b == n and a >= b >= 1, so the safe round
        count 2 + log_a(b) never exceeds 3.
        """
        n = zfpe._coerce_int(n, "n")
        if n < 1:
            raise InvalidModulus(f"Cannot factor {n} for use in FPE")

        n_low_zero = zfpe._low_zero_bits(n)
        a = 1 << (n_low_zero // 2)
        b = 1 << (n_low_zero - n_low_zero // 2)
        n >>= n_low_zero

        for prime in zfpe._small_primes():
            while n % prime == 0:
                a *= prime
                if a > b:
                    a, b = b, a
                n //= prime
            if a > 1 and b > 1:
                break

        if a > b:
            a, b = b, a
        a *= n
        if a < b:
            a, b = b, a

        if a < 1 or b < 1:
            raise FactorizationInvariantViolation("Could not factor n for use in FPE")
        return a, b

    @staticmethod
    def rounds(a: int, b: int) -> int:
        if a < b:
            raise FactorizationInvariantViolation(f"FPE rounds: a < b ({a} < {b})")
        return zfpe.ROUNDS

    # ---------- round function --------------------------------------------

    @staticmethod
    def _encode_int(x: int) -> bytes:
        # Minimal two's-complement form: a leading zero byte whenever the top
        # bit is set, and 0 encodes as a single zero byte.
        length = x.bit_length() // 8 + 1
        return bytes([length]) + x.to_bytes(length, "big")

    @staticmethod
    def _mac(key: bytes, data: bytes) -> bytes:
        h = zfpe.hmac.HMAC(key, zfpe.hashes.SHA256())
        h.update(data)
        return h.finalize()

    class _RoundFunction:
        """HMAC-SHA256 round function bound to one (key, n, tweak) triple."""

        __slots__ = ("_key", "_tag")

        def __init__(self, key: bytes, n: int, tweak: bytes):
            if (n.bit_length() + 7) // 8 > zfpe.MAX_N_BYTES:
                raise InvalidModulus("N is too large for FPE encryption")
            if len(tweak) > zfpe.MAX_TWEAK_BYTES:
                raise ValueError("Tweak too long for FPE encryption")
            self._key = key
            self._tag = zfpe._mac(key, zfpe._encode_int(n) + bytes([len(tweak)]) + tweak)

        @property
        def tag(self) -> bytes:
            return self._tag

        def __call__(self, round_no: int, r: int) -> int:
            # New HMAC per digest; nothing is shared between calls or threads.
            digest = zfpe._mac(self._key, self._tag + bytes([round_no]) + zfpe._encode_int(r))
            return int.from_bytes(digest, "big")

    # ---------- FE1 / FD1 -------------------------------------------------

    @staticmethod
    def encrypt(
        modulus: int,
        plaintext: int,
        key: "zfpe.typing.Union[str, bytes]",
        tweak: "zfpe.typing.Union[str, bytes]" = b""
    ) -> int:
        """
        Generic Z_n FPE encryption, FE1 scheme.

        modulus sets the range: for numbers 0 to 999 pass 1000. The tweak is
        non-secret, think of it as an IV. Returns a value in [0, modulus).
        """
        n = zfpe._check_modulus(modulus)
        x = zfpe._check_value(plaintext, n, "plaintext")
        round_fn = zfpe._RoundFunction(zfpe._coerce_key(key), n, zfpe._coerce_tweak(tweak))
        a, b = zfpe.factor(n)
        r = zfpe.rounds(a, b)

        for i in range(r):
            left, right = divmod(x, b)
            w = (left + round_fn(i, right)) % a
            x = a * right + w
        return x

    @staticmethod
    def decrypt(
        modulus: int,
        ciphertext: int,
        key: "zfpe.typing.Union[str, bytes]",
        tweak: "zfpe.typing.Union[str, bytes]" = b""
    ) -> int:
        """
        Generic Z_n FPE decryption, FD1 scheme.

        Use the same modulus, key and tweak as for encryption. There is no
        authentication: a wrong key or tweak still yields some value in range.
        """
        n = zfpe._check_modulus(modulus)
        x = zfpe._check_value(ciphertext, n, "ciphertext")
        round_fn = zfpe._RoundFunction(zfpe._coerce_key(key), n, zfpe._coerce_tweak(tweak))
        a, b = zfpe.factor(n)
        r = zfpe.rounds(a, b)

        for i in reversed(range(r)):
            right, w = divmod(x, a)
            left = (w - round_fn(i, right)) % a
            x = b * left + right
        return x

    @staticmethod
    def encrypt_checked(modulus, plaintext, key, tweak=b"") -> FPEOutcome:
        try:
            return FPEOutcome(value=zfpe.encrypt(modulus, plaintext, key, tweak))
        except OUTCOME_ERRORS as exc:
            return FPEOutcome(error=exc)

    @staticmethod
    def decrypt_checked(modulus, ciphertext, key, tweak=b"") -> FPEOutcome:
        try:
            return FPEOutcome(value=zfpe.decrypt(modulus, ciphertext, key, tweak))
        except OUTCOME_ERRORS as exc:
            return FPEOutcome(error=exc)

    # ---------- drivers ---------------------------------------------------

    @staticmethod
    def selftest(
        modulus: "zfpe.typing.Optional[int]" = None,
        key: "zfpe.typing.Union[str, bytes]" = SELFTEST_KEY,
        tweak: "zfpe.typing.Union[str, bytes]" = SELFTEST_TWEAK,
        *,
        progress_every: "zfpe.typing.Optional[int]" = None,
        stream=None
    ) -> str:
        """
        Encrypt and decrypt every value of [0, modulus) and check the results.

        Returns "SUCCESS!" or a "FAIL! ..." line naming the first problem:
        a round-trip mismatch, an out-of-range ciphertext or a duplicate.
        """
        n = zfpe._check_modulus(zfpe.SELFTEST_RANGE if modulus is None else modulus)
        if n > zfpe.SELFTEST_MAX_RANGE:
            raise ValueError(f"Self-test range too large ({n}, max {zfpe.SELFTEST_MAX_RANGE})")
        key_bytes = zfpe._coerce_key(key)
        tweak_bytes = zfpe._coerce_tweak(tweak)
        every = zfpe.PROGRESS_EVERY if progress_every is None else progress_every
        out = stream or zfpe.sys.stdout

        results = zfpe.np.empty(n, dtype=zfpe.np.uint64)
        started = zfpe.time.perf_counter()
        for i in range(n):
            enc = zfpe.encrypt(n, i, key_bytes, tweak_bytes)
            dec = zfpe.decrypt(n, enc, key_bytes, tweak_bytes)
            if dec != i:
                return f"FAIL! enc ({enc}) of {i} decrypted to {dec}"
            if not 0 <= enc < n:
                return f"FAIL! enc {enc} out of range {n}"
            results[i] = enc
            if not zfpe._SILENT_MODE and every > 0 and (i + 1) % every == 0:
                print(f"{i + 1}/{n} ok", file=out)

        values, counts = zfpe.np.unique(results, return_counts=True)
        duplicates = values[counts > 1]
        if duplicates.size:
            return f"FAIL! duplicate enc: {int(duplicates[0])}"
        if not zfpe._SILENT_MODE:
            elapsed = zfpe.time.perf_counter() - started
            print(f"{n} values, {values.size} distinct, {elapsed:.2f}s", file=out)
        return "SUCCESS!"

    @staticmethod
    def interactive(
        key: "zfpe.typing.Optional[str]" = None,
        tweak: "zfpe.typing.Optional[str]" = None,
        *,
        stdin=None,
        stdout=None
    ) -> int:
        """Prompt for modulus and plaintext until "exit" or end of input."""
        source = stdin or zfpe.sys.stdin
        out = stdout or zfpe.sys.stdout

        def ask(prompt: str) -> "zfpe.typing.Optional[str]":
            print(prompt, end="", file=out, flush=True)
            line = source.readline()
            if not line:
                return None
            return line.rstrip("\r\n")

        if key is None:
            key = ask("Enter key: ")
            if key is None:
                return 0
        if tweak is None:
            tweak = ask("Enter tweak: ")
            if tweak is None:
                return 0

        mod = None
        plain = None
        while True:
            answer = ask("Enter modulus: " if mod is None else f"Enter modulus [{mod}]: ")
            if answer is None:
                return 0
            answer = answer.strip()
            if answer or mod is None:
                mod = answer
            if mod == "exit":
                return 0

            answer = ask("Enter plain: " if plain is None else f"Enter plain [{plain}]: ")
            if answer is None:
                return 0
            answer = answer.strip()
            if answer or plain is None:
                plain = answer
            if plain == "exit":
                return 0

            try:
                modulus = int(mod)
                value = int(plain)
                enc = zfpe.encrypt(modulus, value, key, tweak)
                dec = zfpe.decrypt(modulus, enc, key, tweak)
            except ValueError as exc:
                print(f"Error: {exc}", file=out)
                continue
            print(f"\nPlain: {value} Enc: {enc} Dec: {dec}\n", file=out)


# FE1 - encrypt(modulus, plaintext, key, tweak)
# FD1 - decrypt(modulus, ciphertext, key, tweak)
# 0 <= plaintext < modulus, modulus at most 128 bits

# HOW TO USE: zfpe.encrypt(1000000000, 123456789, "key", "tweak")


def _resolve_secret(flag_value, env_name: str, default=None):
    if flag_value is not None:
        return flag_value
    env_value = _os_module.getenv(env_name)
    if env_value is not None:
        return env_value
    return default


def cli(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(prog="zfpe", description="FE1 format-preserving encryption over [0, n)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, verb in (("encrypt", "Encrypt"), ("decrypt", "Decrypt")):
        sub = subparsers.add_parser(
            name,
            help=f"{verb} one integer in [0, modulus)"
        )
        sub.add_argument(
            "value",
            type=int,
            help="Integer to process"
        )
        sub.add_argument(
            "-n", "--modulus",
            type=int,
            required=True,
            help="Size of the value space, e.g. 1000000000 for 9-digit numbers"
        )
        sub.add_argument(
            "-k", "--key",
            default=None,
            help="Secret key (falls back to ZFPE_KEY)"
        )
        sub.add_argument(
            "-t", "--tweak",
            default=None,
            help="Non-secret tweak (falls back to ZFPE_TWEAK, then empty)"
        )

    factor_cmd = subparsers.add_parser(
        "factor",
        help="Show the Feistel factor pair used for a modulus"
    )
    factor_cmd.add_argument(
        "modulus",
        type=int,
        help="Modulus to factor"
    )

    selftest_cmd = subparsers.add_parser(
        "selftest",
        help="Encrypt/decrypt a whole range and check for collisions"
    )
    selftest_cmd.add_argument(
        "--range",
        dest="range_size",
        type=int,
        default=None,
        help="Modulus to sweep (default ZFPE_SELFTEST_RANGE or 10000)"
    )
    selftest_cmd.add_argument(
        "-k", "--key",
        default=None,
        help="Secret key"
    )
    selftest_cmd.add_argument(
        "-t", "--tweak",
        default=None,
        help="Non-secret tweak"
    )
    selftest_cmd.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only print the final result"
    )

    interactive_cmd = subparsers.add_parser(
        "interactive",
        help="Prompt for values in a loop until 'exit'"
    )
    interactive_cmd.add_argument(
        "-k", "--key",
        default=None,
        help="Secret key (falls back to ZFPE_KEY, then a prompt)"
    )
    interactive_cmd.add_argument(
        "-t", "--tweak",
        default=None,
        help="Non-secret tweak (falls back to ZFPE_TWEAK, then a prompt)"
    )

    args = parser.parse_args(argv)

    if args.command in ("encrypt", "decrypt"):
        key = _resolve_secret(args.key, "ZFPE_KEY")
        if not key:
            print("Key required: pass -k/--key or set ZFPE_KEY", file=zfpe.sys.stderr)
            return 1
        tweak = _resolve_secret(args.tweak, "ZFPE_TWEAK", "")
        operation = zfpe.encrypt if args.command == "encrypt" else zfpe.decrypt
        try:
            result = operation(args.modulus, args.value, key, tweak)
        except ValueError as exc:
            print(f"Failed to {args.command}: {exc}", file=zfpe.sys.stderr)
            return 1
        print(result)
        return 0

    if args.command == "factor":
        try:
            a, b = zfpe.factor(args.modulus)
        except ValueError as exc:
            print(f"Failed to factor: {exc}", file=zfpe.sys.stderr)
            return 1
        print(f"{a} {b}")
        return 0

    if args.command == "selftest":
        key = _resolve_secret(args.key, "ZFPE_KEY", zfpe.SELFTEST_KEY)
        tweak = _resolve_secret(args.tweak, "ZFPE_TWEAK", zfpe.SELFTEST_TWEAK)
        previous_silent = zfpe._SILENT_MODE
        zfpe._SILENT_MODE = previous_silent or args.quiet
        try:
            result = zfpe.selftest(args.range_size, key, tweak)
        except ValueError as exc:
            print(f"Self-test failed to start: {exc}", file=zfpe.sys.stderr)
            return 1
        finally:
            zfpe._SILENT_MODE = previous_silent
        print(result)
        return 0 if result == "SUCCESS!" else 1

    if args.command == "interactive":
        key = _resolve_secret(args.key, "ZFPE_KEY")
        tweak = _resolve_secret(args.tweak, "ZFPE_TWEAK")
        return zfpe.interactive(key, tweak)

    return 0


def main(argv=None) -> int:
    return cli(argv)


if __name__ == "__main__":
    raise SystemExit(main())
