#!/usr/bin/env python3
"""
otp_cli.py - CLI wrapper for otp_core.py

Sub-commands:
- generate  : generate one or more patterned codes (optionally HMAC-bound)
- validate  : check a code against a pool / alphabet (and a stored digest)
- entropy   : print the minimum entropy of a pool
- templates : list the built-in pools

eg..:
    mnemonic-otp generate --count 3
    mnemonic-otp generate --pool strong --secret s3cret --meta '{"email": "a@b.c"}' --encoding base64url
    mnemonic-otp validate --code 7KQ7KQ --template ABCABC
    mnemonic-otp entropy --template ABCABC --template ABCCBA --alphabet 0123456789
"""

import argparse
import json
import sys

from . import otp_core
from .binding import DEFAULT_DIGEST_ALGORITHM, DEFAULT_DIGEST_ENCODING, DIGEST_ALGORITHMS, DIGEST_ENCODINGS
from .errors import MnemonicOTPError
from .log_handler import configure_logging

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_USAGE = 2


def _pool(args):
    """--template wins over --pool."""
    if args.template:
        return otp_core.parse_pool(args.template)
    return otp_core.TEMPLATE_POOLS[args.pool]


def _meta(args):
    if args.meta is None:
        return None
    try:
        return json.loads(args.meta)
    except json.JSONDecodeError as e:
        raise MnemonicOTPError(f"--meta is not valid JSON: {e}") from e


# --- CLI command handlers ---
def cmd_generate(args):
    pool = _pool(args)
    meta = _meta(args)
    results = [
        otp_core.generate(
            alphabet=args.alphabet,
            templates=pool,
            secret=args.secret,
            meta=meta,
            digest_algorithm=args.algorithm,
            digest_encoding=args.encoding,
        )
        for _ in range(args.count)
    ]
    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return EXIT_OK
    for r in results:
        line = f"{r.code}  (template={r.template}, entropy={r.entropy_bits} bits)"
        if r.digest is not None:
            line += f"  digest={r.digest}"
        print(line)
    return EXIT_OK


def cmd_validate(args):
    ok = otp_core.validate_code(
        args.code,
        alphabet=args.alphabet,
        templates=_pool(args),
        secret=args.secret,
        meta=_meta(args),
        stored_digest=args.digest,
        digest_algorithm=args.algorithm,
        digest_encoding=args.encoding,
    )
    if ok:
        print(f"[+] Code {args.code} is VALID")
        return EXIT_OK
    print(f"[-] Code {args.code} is INVALID")
    return EXIT_INVALID


def cmd_entropy(args):
    alphabet = otp_core.check_alphabet(args.alphabet or otp_core.DEFAULT_ALPHABET)
    bits = otp_core.calc_pool_entropy_bits(_pool(args), len(alphabet))
    print(f"{bits} bits (alphabet of {len(alphabet)} symbols)")
    return EXIT_OK


def cmd_templates(args):
    alphabet_len = len(otp_core.DEFAULT_ALPHABET)
    for name, pool in otp_core.TEMPLATE_POOLS.items():
        bits = otp_core.calc_pool_entropy_bits(pool, alphabet_len)
        print(f"{name} ({bits} bits): {' '.join(t.name for t in pool)}")
    return EXIT_OK


def cmd_help(args):
    print("'mnemonic-otp -h' for help.")
    return EXIT_USAGE


def _positive_int(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


# --- Argparse builder ---
def _add_pool_args(p):
    p.add_argument("--pool", choices=sorted(otp_core.TEMPLATE_POOLS), default="default",
                   help="Built-in template pool")
    p.add_argument("--template", action="append", metavar="LABEL",
                   help="Template label (A-Z), repeatable; overrides --pool")
    p.add_argument("--alphabet", help="Symbols to draw from (default: Crockford-style base 33)")


def _add_binding_args(p):
    p.add_argument("--secret", help="HMAC key binding the code to --meta")
    p.add_argument("--meta", help="Metadata as a JSON document")
    p.add_argument("--algorithm", choices=DIGEST_ALGORITHMS, default=DEFAULT_DIGEST_ALGORITHM)
    p.add_argument("--encoding", choices=DIGEST_ENCODINGS, default=DEFAULT_DIGEST_ENCODING)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mnemonic-otp", description="Human-memorable patterned OTP generator")
    p.add_argument("--verbose", action="store_true", help="Verbose output")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # generate
    pg = sub.add_parser("generate", help="Generate patterned codes")
    _add_pool_args(pg)
    _add_binding_args(pg)
    pg.add_argument("--count", type=_positive_int, default=1, help="Number of codes")
    pg.add_argument("--json", action="store_true", help="Print JSON instead of text")
    pg.set_defaults(func=cmd_generate)

    # validate
    pv = sub.add_parser("validate", help="Validate a code")
    pv.add_argument("--code", required=True, help="Code to validate")
    _add_pool_args(pv)
    _add_binding_args(pv)
    pv.add_argument("--digest", help="Stored digest to verify against (needs --secret)")
    pv.set_defaults(func=cmd_validate)

    # entropy
    pe = sub.add_parser("entropy", help="Minimum entropy of a template pool")
    _add_pool_args(pe)
    pe.set_defaults(func=cmd_entropy)

    # templates
    pt = sub.add_parser("templates", help="List built-in template pools")
    pt.set_defaults(func=cmd_templates)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        configure_logging(verbose=True)
    try:
        return args.func(args)
    except MnemonicOTPError as e:
        print(f"[!] {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
