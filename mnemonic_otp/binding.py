"""
binding.py - Bind a generated code to caller metadata with a keyed digest (HMAC).

Flow:
1. canonical_payload(code, meta) -> deterministic bytes of {code, ...meta}
2. compute_digest(...)           -> HMAC over the payload, encoded as text
3. verify_digest(...)            -> recompute + constant-time compare

Only the digest needs to be persisted; the plaintext code never does.
Callers wanting replay protection put a per-attempt nonce into `meta`.
"""

import base64
import binascii
import hmac
import json
import logging
import math
from collections.abc import Mapping
from typing import Any, Callable, Optional, Union

from .errors import MnemonicOTPError

log = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DIGEST_ALGORITHMS = ("sha256", "sha512")
DIGEST_ENCODINGS = ("hex", "base64", "base64url")
DEFAULT_DIGEST_ALGORITHM = "sha256"
DEFAULT_DIGEST_ENCODING = "hex"

Secret = Union[bytes, str]
DigestFn = Callable[[str, bytes, bytes], bytes]
CompareFn = Callable[[bytes, bytes], bool]


class _Absent:
    """Marker for a mapping value that must be left out of the payload."""

    def __repr__(self):
        return "ABSENT"


ABSENT = _Absent()


# --- Canonicalization ------------------------------------------------------
def canonicalize(value: Any) -> Any:
    """
    Convert `value` into a plain structure whose JSON form is deterministic.

    - Mapping: keys stringified and sorted, entries whose value is ABSENT are
      dropped. None is kept (serialises as null). Two keys that stringify the
      same (1 and "1") raise MnemonicOTPError.
    - list / tuple: order kept, elements canonicalized. ABSENT becomes null so
      positions are preserved.
    - set / frozenset: elements canonicalized, sorted by their JSON form.
    - None, bool, int, str, finite float: returned unchanged.
    - Anything else (bytes, datetime, nan/inf, custom objects): str(value).
    """
    if value is ABSENT:
        return None
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Mapping):
        out = {}
        for k, v in value.items():
            if v is ABSENT:
                continue
            key = str(k)
            if key in out:
                raise MnemonicOTPError(f"Metadata keys collide once stringified: {key!r}")
            out[key] = canonicalize(v)
        return dict(sorted(out.items()))
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((canonicalize(v) for v in value), key=_dumps)
    return str(value)


def _dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_payload(code: str, meta: Any = None) -> bytes:
    """
    Build the bytes that get signed: compact sorted-key JSON of {code, ...meta}.

    Mapping metadata is merged beside `code`; any other value is nested under a
    `meta` key. None / ABSENT metadata contributes nothing. The `code` field
    always holds the code being bound, a `code` key inside meta cannot replace it.

    >>> canonical_payload("ABCABC", {"b": 1, "a": 2})
    b'{"a":2,"b":1,"code":"ABCABC"}'
    """
    if isinstance(meta, Mapping):
        fields = dict(canonicalize(meta))
    elif meta is None or meta is ABSENT:
        fields = {}
    else:
        fields = {"meta": canonicalize(meta)}
    fields["code"] = code
    return _dumps(fields).encode("utf-8")


# --- Digest primitives -----------------------------------------------------
def hmac_digest(algorithm: str, key: bytes, message: bytes) -> bytes:
    """Default keyed digest: HMAC-<algorithm>(key, message), raw bytes."""
    return hmac.new(key, message, algorithm).digest()


def _check_options(algorithm: str, encoding: str) -> None:
    if algorithm not in DIGEST_ALGORITHMS:
        raise ValueError(f"Unsupported digest algorithm {algorithm!r}, expected one of {DIGEST_ALGORITHMS}")
    if encoding not in DIGEST_ENCODINGS:
        raise ValueError(f"Unsupported digest encoding {encoding!r}, expected one of {DIGEST_ENCODINGS}")


def _key_bytes(secret: Secret) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return bytes(secret)


def encode_digest(raw: bytes, encoding: str) -> str:
    if encoding == "hex":
        return raw.hex()
    if encoding == "base64":
        return base64.b64encode(raw).decode("ascii")
    # base64url, no padding
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_digest(text: str, encoding: str) -> Optional[bytes]:
    """
    Decode a stored digest string. Returns None when `text` is not valid for
    `encoding` (bad characters, bad padding, padding on base64url, ...).
    """
    if not isinstance(text, str):
        return None
    try:
        if encoding == "hex":
            return binascii.unhexlify(text)
        if encoding == "base64":
            return base64.b64decode(text, validate=True)
        if any(ch in text for ch in "=+/"):
            return None
        padded = text + "=" * (-len(text) % 4)
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        return None


def compute_digest(
    code: str,
    secret: Secret,
    meta: Any = None,
    algorithm: str = DEFAULT_DIGEST_ALGORITHM,
    encoding: str = DEFAULT_DIGEST_ENCODING,
    digest_fn: Optional[DigestFn] = None,
) -> str:
    """
    Compute the keyed digest binding `code` to `meta`.

    Arguments:
        code: the generated code (as issued, upper-case)
        secret: HMAC key, bytes or str (UTF-8)
        meta: caller metadata (mapping, sequence, scalar or None)
        algorithm: "sha256" (default) or "sha512"
        encoding: "hex" (default), "base64" or "base64url" (no padding)
        digest_fn: keyed digest primitive, default hmac_digest

    Returns:
        str: encoded digest

    Raises:
        ValueError: unknown algorithm / encoding
    """
    _check_options(algorithm, encoding)
    digest_fn = digest_fn or hmac_digest
    payload = canonical_payload(code, meta)
    raw = digest_fn(algorithm, _key_bytes(secret), payload)
    log.debug("Computed %s digest over %d-byte payload", algorithm, len(payload))
    return encode_digest(raw, encoding)


def verify_digest(
    code: str,
    secret: Secret,
    meta: Any,
    stored: str,
    algorithm: str = DEFAULT_DIGEST_ALGORITHM,
    encoding: str = DEFAULT_DIGEST_ENCODING,
    digest_fn: Optional[DigestFn] = None,
    compare_fn: Optional[CompareFn] = None,
) -> bool:
    """
    Check `stored` against the digest recomputed over {code, ...meta}.

    Any decode failure or length mismatch is a plain False. The comparison goes
    through `compare_fn` (default hmac.compare_digest) so timing doesn't leak
    where the digests differ.
    """
    _check_options(algorithm, encoding)
    expected_raw = decode_digest(stored, encoding)
    if expected_raw is None:
        log.debug("Stored digest is not valid %s", encoding)
        return False
    digest_fn = digest_fn or hmac_digest
    compare_fn = compare_fn or hmac.compare_digest
    actual_raw = digest_fn(algorithm, _key_bytes(secret), canonical_payload(code, meta))
    if len(actual_raw) != len(expected_raw):
        return False
    return bool(compare_fn(actual_raw, expected_raw))
