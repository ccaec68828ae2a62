#!/usr/bin/env python3
"""Quick FE1 benchmark - direct timing only"""
import time


ITERATIONS = 1000
KEY = "Here is my secret key"
TWEAK = "Here is my tweak"
MODULI = (10 ** 4, 10 ** 9, 10 ** 16, 2 ** 128 - 1)


def bench_python(modulus, iterations=ITERATIONS):
    """Benchmark encrypt + decrypt for one modulus"""
    import zfpe

    step = max(1, modulus // iterations)
    start = time.perf_counter()
    for i in range(iterations):
        enc = zfpe.encrypt(modulus, (i * step) % modulus, KEY, TWEAK)
        zfpe.decrypt(modulus, enc, KEY, TWEAK)
    elapsed = time.perf_counter() - start
    return elapsed, enc


def main():
    print(f"Benchmarking FE1 encrypt+decrypt ({ITERATIONS} iterations per modulus)...\n")

    for modulus in MODULI:
        elapsed, sample = bench_python(modulus, ITERATIONS)
        print(f"n = {modulus}")
        print(f"  Time: {elapsed:.3f}s ({elapsed / ITERATIONS * 1000:.2f} ms/op)")
        print(f"  Last ciphertext: {sample}")

    print("\n✅ Python benchmark complete")


if __name__ == '__main__':
    main()
