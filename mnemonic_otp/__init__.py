"""
mnemonic_otp package
====================

Human-memorable one-time passcodes built from repeating-symbol templates,
with a provable entropy floor and optional HMAC binding to context metadata.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- Template: "ABCABC" -> slot indices [0,1,2,0,1,2].
  Positions with the same index hold the same symbol.

- Generation:
  pick a template uniformly from the pool, draw one symbol per unique slot
  from the alphabet, write each symbol at every position of its slot.

- Entropy (whole pool, minimum):
  log2( Σ alphabet ** unique_slots(t) ), evaluated in log space.
  Default pool + 33-symbol alphabet -> 20 bits; STRONG_TEMPLATES -> 36 bits.

- Binding:
  HMAC(secret, canonical JSON of {code, ...meta}). Store the digest only,
  verify later with a constant-time compare.

──────────────────────────────────────────────
Quick usage
──────────────────────────────────────────────
>>> from mnemonic_otp import generate, validate_code
>>> otp = generate()
>>> validate_code(otp.code)
True

>>> meta = {"email": "alice@example.com", "attempt_nonce": "4f1b2c3d"}
>>> otp = generate(secret=b"server-key", meta=meta, digest_encoding="base64url")
>>> validate_code(otp.code, secret=b"server-key", meta=meta,
...               stored_digest=otp.digest, digest_encoding="base64url")
True
"""
from .binding import (
    ABSENT,
    DEFAULT_DIGEST_ALGORITHM,
    DEFAULT_DIGEST_ENCODING,
    DIGEST_ALGORITHMS,
    DIGEST_ENCODINGS,
    canonical_payload,
    canonicalize,
    compute_digest,
    hmac_digest,
    verify_digest,
)
from .errors import (
    InvalidAlphabet,
    InvalidTemplate,
    InvalidTemplatePool,
    MissingSecret,
    MnemonicOTPError,
)
from .otp_core import (
    DEFAULT_ALPHABET,
    DEFAULT_TEMPLATES,
    STRONG_TEMPLATES,
    TEMPLATE_POOLS,
    GeneratedCode,
    Template,
    calc_pool_entropy_bits,
    check_alphabet,
    generate,
    matches_template,
    parse_pool,
    pattern,
    secure_randbelow,
    validate_code,
)

__version__ = "0.3.0"

__all__ = [
    "ABSENT",
    "DEFAULT_ALPHABET",
    "DEFAULT_DIGEST_ALGORITHM",
    "DEFAULT_DIGEST_ENCODING",
    "DEFAULT_TEMPLATES",
    "DIGEST_ALGORITHMS",
    "DIGEST_ENCODINGS",
    "STRONG_TEMPLATES",
    "TEMPLATE_POOLS",
    "GeneratedCode",
    "InvalidAlphabet",
    "InvalidTemplate",
    "InvalidTemplatePool",
    "MissingSecret",
    "MnemonicOTPError",
    "Template",
    "calc_pool_entropy_bits",
    "canonical_payload",
    "canonicalize",
    "check_alphabet",
    "compute_digest",
    "generate",
    "hmac_digest",
    "matches_template",
    "parse_pool",
    "pattern",
    "secure_randbelow",
    "validate_code",
    "verify_digest",
]
