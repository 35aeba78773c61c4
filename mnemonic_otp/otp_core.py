"""
otp_core.py - Core library for human-memorable patterned OTPs.

A template such as "ABCABC" says which positions of the code share a symbol:
positions 1 and 4 hold one random symbol, 2 and 5 another, 3 and 6 a third.
The code is easy to read aloud and retype, yet every free slot is drawn
uniformly from the alphabet, so the pool of templates has a computable
minimum entropy.

Goals:
- Pure functions, no I/O. CLI and REST layers live in separate modules.
- Randomness is injected: `rng(n)` must return a uniform int in [0, n).
  The default is secrets.randbelow (CSPRNG). Tests pass a deterministic stub.

Security note:
- Use a cryptographically secure `rng` in production. The core can't check it.
- Syntactic validation only proves the code *could* have been generated. To tie
  a code to a user / attempt, pass `secret` + `meta` and keep only the digest
  (see binding.py).
"""

import logging
import math
import secrets
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from .binding import (
    DEFAULT_DIGEST_ALGORITHM,
    DEFAULT_DIGEST_ENCODING,
    CompareFn,
    DigestFn,
    Secret,
    compute_digest,
    verify_digest,
)
from .errors import InvalidAlphabet, InvalidTemplate, InvalidTemplatePool, MissingSecret

log = logging.getLogger(__name__)

RandomSource = Callable[[int], int]


# --- Template model --------------------------------------------------------
@dataclass(frozen=True)
class Template:
    """
    Parsed pattern.

    name: upper-cased label, e.g. "ABCABC"
    idx:  slot index per position, e.g. (0, 1, 2, 0, 1, 2). Equal indices mean
          "same symbol"; indices are 0..U-1 in order of first appearance.
    """

    name: str
    idx: Tuple[int, ...]

    @property
    def length(self) -> int:
        return len(self.idx)

    @property
    def unique_slots(self) -> int:
        return 1 + max(self.idx)


def pattern(label: str) -> Template:
    """
    Parse a label (letters A–Z, any case, any length >= 1) into a Template.

    Each letter gets a slot index the first time it is seen and keeps it:
        pattern("abcCBA") -> Template(name="ABCCBA", idx=(0, 1, 2, 2, 1, 0))

    Raises:
        InvalidTemplate: empty label, or a character that is not A–Z
    """
    if not isinstance(label, str) or not label:
        raise InvalidTemplate("Pattern must be at least one character long")
    upper = label.upper()
    slots: Dict[str, int] = {}
    idx = []
    for ch in upper:
        if not ("A" <= ch <= "Z"):
            raise InvalidTemplate(f"Pattern may only contain letters A-Z, got {ch!r} in {label!r}")
        if ch not in slots:
            slots[ch] = len(slots)
        idx.append(slots[ch])
    return Template(name=upper, idx=tuple(idx))


# --- Config / constants ----------------------------------------------------
# Crockford-style Base-32 without the look-alikes I, L, O (33 symbols)
DEFAULT_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTUVWXYZ"

# Built-in pool, all 6 characters (~20 bits with DEFAULT_ALPHABET)
DEFAULT_TEMPLATES: Tuple[Template, ...] = (
    pattern("ABCABC"),  # mirror repeat
    pattern("AAABBB"),  # triplet + triplet
    pattern("ABABAB"),  # alternating
    pattern("ABCDAB"),  # first 4 then repeat first 2
    pattern("ABCCBA"),  # perfect palindrome
)

# Strong pool, 8 characters (>= 30 bits with DEFAULT_ALPHABET)
STRONG_TEMPLATES: Tuple[Template, ...] = (
    pattern("ABCDEFAB"),
    pattern("ABCDABEF"),
    pattern("ABCAEFBG"),
    pattern("ABCDEFAH"),
    pattern("ABCDGEFA"),
    pattern("ABACDEFG"),
)

TEMPLATE_POOLS: Dict[str, Tuple[Template, ...]] = {
    "default": DEFAULT_TEMPLATES,
    "strong": STRONG_TEMPLATES,
}


def parse_pool(templates: Iterable[Union[Template, str]]) -> Tuple[Template, ...]:
    """
    Coerce a pool given as Templates and/or label strings into a tuple of Templates.

    Raises:
        InvalidTemplate: a label can't be parsed
        InvalidTemplatePool: the pool is empty
    """
    if isinstance(templates, (str, Template)):
        templates = [templates]
    pool = tuple(t if isinstance(t, Template) else pattern(t) for t in templates)
    if not pool:
        raise InvalidTemplatePool("At least one template required")
    return pool


def check_alphabet(alphabet: str) -> str:
    """
    Raise InvalidAlphabet unless `alphabet` has >= 2 distinct symbols, none of
    which changes under str.upper(). Validation upper-cases the candidate, so a
    lower-case symbol could never be matched.
    """
    if not isinstance(alphabet, str) or len(alphabet) < 2:
        raise InvalidAlphabet("Alphabet must contain at least 2 symbols")
    if len(set(alphabet)) != len(alphabet):
        dupes = sorted({ch for ch in alphabet if alphabet.count(ch) > 1})
        raise InvalidAlphabet(f"Alphabet contains duplicate symbols: {''.join(dupes)}")
    if alphabet.upper() != alphabet:
        lowered = sorted({ch for ch in alphabet if ch.upper() != ch})
        raise InvalidAlphabet(f"Alphabet symbols must be upper-case, got: {''.join(lowered)}")
    return alphabet


def _resolve(alphabet: Optional[str], templates: Optional[Iterable[Union[Template, str]]]):
    alphabet = DEFAULT_ALPHABET if alphabet is None else check_alphabet(alphabet)
    pool = DEFAULT_TEMPLATES if templates is None else parse_pool(templates)
    return alphabet, pool


# --- Entropy ---------------------------------------------------------------
def calc_pool_entropy_bits(templates: Iterable[Union[Template, str]], alphabet_length: int) -> int:
    """
    Minimum entropy (bits) of the *whole* pool.

    Total outcomes = Σ alphabet_length ** unique_slots(t). An attacker knows the
    pool and the alphabet but neither the chosen template nor the symbols.
    Codes reachable through several templates are counted once per template
    (a simple approximation, kept on purpose).

    Evaluated in log space so large alphabets / many slots never overflow:
        bits = u_max*log2(a) + log2( Σ 2 ** ((u - u_max) * log2(a)) )
    Every exponent is <= 0, so each term lies in (0, 1]. The float estimate is
    then checked against the exact integer count, which Python ints hold
    without overflow.

    The reported value is the largest integer strictly below that log2, so the
    stated floor is never reached exactly:
        default pool, 33 symbols -> 20
        one 1-slot template, 2 symbols -> 0

    Raises:
        InvalidAlphabet: alphabet_length < 2
        InvalidTemplatePool: empty pool
    """
    if alphabet_length < 2:
        raise InvalidAlphabet("Alphabet must contain at least 2 symbols")
    pool = parse_pool(templates)

    log2a = math.log2(alphabet_length)
    uniques = [t.unique_slots for t in pool]
    u_max = max(uniques)
    total = sum(2.0 ** ((u - u_max) * log2a) for u in uniques)
    bits = u_max * log2a + math.log2(total)
    k = math.ceil(bits) - 1

    # float rounding can land k one off; settle it on the exact outcome count
    exact = sum(alphabet_length ** u for u in uniques)
    if exact > 2 ** (k + 1):
        k += 1
    elif exact <= 2 ** k:
        k -= 1
    return k


# --- Generation ------------------------------------------------------------
@dataclass(frozen=True)
class GeneratedCode:
    """Result of generate(). `digest` is set only when a secret was supplied."""

    code: str
    template: str
    entropy_bits: int
    digest: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {"code": self.code, "template": self.template, "entropy_bits": self.entropy_bits}
        if self.digest is not None:
            out["digest"] = self.digest
        return out


def secure_randbelow(n: int) -> int:
    """Default random source: uniform int in [0, n) from the OS CSPRNG."""
    return secrets.randbelow(n)


def _draw(rng: RandomSource, n: int) -> int:
    value = rng(n)
    if not isinstance(value, int) or not 0 <= value < n:
        raise ValueError(f"Random source returned {value!r}, expected an int in [0, {n})")
    return value


def generate(
    alphabet: Optional[str] = None,
    templates: Optional[Iterable[Union[Template, str]]] = None,
    rng: Optional[RandomSource] = None,
    secret: Optional[Secret] = None,
    meta: Any = None,
    digest_algorithm: str = DEFAULT_DIGEST_ALGORITHM,
    digest_encoding: str = DEFAULT_DIGEST_ENCODING,
    digest_fn: Optional[DigestFn] = None,
) -> GeneratedCode:
    """
    Generate a patterned OTP.

    Steps:
    1. Pick a template uniformly (no draw when the pool has a single template)
    2. Draw U symbols, one per unique slot (with replacement)
    3. Place each slot's symbol at every position of that slot
    4. Report the entropy of the whole pool
    5. If `secret` is given, attach the digest over {code, ...meta}

    Arguments:
        alphabet: symbols to draw from (default DEFAULT_ALPHABET)
        templates: pool of Templates or labels (default DEFAULT_TEMPLATES)
        rng: rng(n) -> uniform int in [0, n) (default secrets.randbelow)
        secret: HMAC key for binding (optional)
        meta: metadata bound into the digest
        digest_algorithm: "sha256" | "sha512"
        digest_encoding: "hex" | "base64" | "base64url"
        digest_fn: keyed digest primitive override

    Returns:
        GeneratedCode

    Raises:
        InvalidAlphabet, InvalidTemplatePool, InvalidTemplate
        ValueError: rng out of range, unknown digest algorithm / encoding

    >>> generate(templates=["ABCABC"]).template
    'ABCABC'
    """
    alphabet, pool = _resolve(alphabet, templates)
    rng = rng or secure_randbelow

    t = pool[0] if len(pool) == 1 else pool[_draw(rng, len(pool))]
    symbols = [alphabet[_draw(rng, len(alphabet))] for _ in range(t.unique_slots)]
    code = "".join(symbols[i] for i in t.idx)

    entropy_bits = calc_pool_entropy_bits(pool, len(alphabet))
    log.debug("Generated code from template %s (pool of %d, %d bits)", t.name, len(pool), entropy_bits)

    digest = None
    if secret is not None:
        digest = compute_digest(
            code, secret, meta,
            algorithm=digest_algorithm, encoding=digest_encoding, digest_fn=digest_fn,
        )
    return GeneratedCode(code=code, template=t.name, entropy_bits=entropy_bits, digest=digest)


# --- Validation ------------------------------------------------------------
def matches_template(code: str, t: Template) -> bool:
    """
    True if `code` is consistent with `t`: same slot -> same character.

    Different slots may still hold the same character (a random draw can repeat),
    so only the forward direction is checked.
    """
    if len(code) != t.length:
        return False
    seen: Dict[int, str] = {}
    for slot, ch in zip(t.idx, code):
        if seen.setdefault(slot, ch) != ch:
            return False
    return True


def validate_code(
    code: str,
    alphabet: Optional[str] = None,
    templates: Optional[Iterable[Union[Template, str]]] = None,
    secret: Optional[Secret] = None,
    meta: Any = None,
    stored_digest: Optional[str] = None,
    digest_algorithm: str = DEFAULT_DIGEST_ALGORITHM,
    digest_encoding: str = DEFAULT_DIGEST_ENCODING,
    digest_fn: Optional[DigestFn] = None,
    compare_fn: Optional[CompareFn] = None,
) -> bool:
    """
    Check that `code` conforms syntactically to one of the templates & the
    alphabet, and optionally that it matches a stored digest.

    Case-insensitive: the code is upper-cased before any check. A malformed
    candidate returns False; only malformed options raise.

    Binding:
    - stored_digest given -> the digest over {code, ...meta} must match
    - secret given without stored_digest -> False (nothing to verify against)

    Raises:
        InvalidAlphabet, InvalidTemplatePool, InvalidTemplate: bad options
        MissingSecret: stored_digest without secret
    """
    alphabet, pool = _resolve(alphabet, templates)
    if stored_digest is not None and secret is None:
        raise MissingSecret("A secret is required to verify a stored digest")

    if not isinstance(code, str):
        return False
    up = code.upper()
    if not all(ch in alphabet for ch in up):
        return False
    if not any(matches_template(up, t) for t in pool):
        return False

    if secret is None:
        return True
    if stored_digest is None:
        log.debug("Secret supplied without a stored digest, rejecting")
        return False
    return verify_digest(
        up, secret, meta, stored_digest,
        algorithm=digest_algorithm, encoding=digest_encoding,
        digest_fn=digest_fn, compare_fn=compare_fn,
    )
