import json
import sys
from datetime import datetime, timezone

from zfpe import __version__, encrypt, factor


CASES = [
    ("Here is my secret key!", "tweak", 100, 53),
    ("Here is my secret key!", "tweak", 1000, 123),
    ("Here is my secret key!", "tweak", 1_000_000_000, 123_456_789),
    ("Here is my secret key!", "tweak", 7, 3),
    ("Here is my secret key", "Here is my tweak", 10_000, 42),
    ("Here is my secret key", "", 100, 0),
]


def main() -> int:
    dst = sys.argv[1] if len(sys.argv) > 1 else "golden-vectors.json"

    vectors = []
    for key, tweak, modulus, plaintext in CASES:
        a, b = factor(modulus)
        vectors.append({
            "key": key,
            "tweak": tweak,
            "modulus": str(modulus),
            "factors": [str(a), str(b)],
            "plaintext": str(plaintext),
            "ciphertext": str(encrypt(modulus, plaintext, key, tweak)),
        })

    data = {
        "scheme": "FE1 HMAC-SHA256",
        "engine_version": __version__,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "vectors": vectors,
    }
    with open(dst, "w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2)
        handle.write("\n")
    print(f"Wrote {len(vectors)} vectors to {dst}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
