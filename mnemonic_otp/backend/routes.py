"""
MNEMONIC OTP API ROUTES - FLASK BLUEPRINT

REST endpoints wrapping otp_core. The binding secret never travels in a
request: it is read from the app config (MNEMONIC_OTP_SECRET).

EXAMPLES:
curl -X POST http://localhost:5000/generate -H "Content-Type: application/json" -d "{}"
curl -X POST http://localhost:5000/generate -H "Content-Type: application/json" \
     -d '{"pool": "strong", "bind": true, "meta": {"email": "alice@example.com"}}'
curl -X POST http://localhost:5000/validate -H "Content-Type: application/json" -d '{"code": "7KQ7KQ"}'
curl "http://localhost:5000/entropy?templates=ABCABC,ABCCBA"
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from .. import otp_core
from ..errors import MnemonicOTPError
from ..log_handler import LOGGER_NAME

log = logging.getLogger(f"{LOGGER_NAME}.backend")

otp_bp = Blueprint('otp', __name__)


@otp_bp.errorhandler(MnemonicOTPError)
def handle_otp_error(exc):
    log.info("Rejected request: %s", exc)
    return jsonify({"error": str(exc)}), 400


def _pool_from(data) -> tuple:
    """`templates` (list or comma separated labels) wins over `pool` (built-in name)."""
    templates = data.get('templates')
    if templates:
        if isinstance(templates, str):
            templates = [t.strip() for t in templates.split(',') if t.strip()]
        return otp_core.parse_pool(templates)
    name = data.get('pool') or current_app.config["OTP_POOL"]
    if name not in otp_core.TEMPLATE_POOLS:
        raise MnemonicOTPError(f"Unknown pool {name!r}, expected one of {sorted(otp_core.TEMPLATE_POOLS)}")
    return otp_core.TEMPLATE_POOLS[name]


def _digest_options() -> dict:
    return {
        "digest_algorithm": current_app.config["OTP_DIGEST_ALGORITHM"],
        "digest_encoding": current_app.config["OTP_DIGEST_ENCODING"],
    }


@otp_bp.route('/generate', methods=['POST'])
def generate_route():
    """
    GENERATE A CODE

    Input (JSON body, all optional):
      {
        "pool": "default",          # or "strong"
        "templates": ["ABCABC"],    # overrides pool
        "alphabet": "0123456789",
        "bind": true,               # attach HMAC digest (server secret)
        "meta": {...}               # bound into the digest
      }

    Output:
      {"code": "7KQ7KQ", "template": "ABCABC", "entropy_bits": 20, "digest": "..."}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object required"}), 400
    pool = _pool_from(data)
    secret = None
    if data.get('bind'):
        secret = current_app.config["OTP_SECRET"]
        if not secret:
            return jsonify({"error": "Binding requested but no server secret is configured"}), 400

    result = otp_core.generate(
        alphabet=data.get('alphabet'),
        templates=pool,
        secret=secret,
        meta=data.get('meta'),
        **_digest_options(),
    )
    log.info("Issued code from template %s (%d bits, bound=%s)",
             result.template, result.entropy_bits, result.digest is not None)
    return jsonify(result.to_dict())


@otp_bp.route('/validate', methods=['POST'])
def validate_route():
    """
    VALIDATE A CODE

    Input (JSON body):
      {
        "code": "7KQ7KQ",           # REQUIRED
        "pool" / "templates" / "alphabet" as for /generate,
        "digest": "...",            # stored digest, checked with the server secret
        "meta": {...}
      }

    Output:
      {"valid": true}  or  {"valid": false}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "code" not in data:
        return jsonify({"error": "Code is required"}), 400

    stored_digest = data.get('digest')
    secret = None
    if stored_digest is not None:
        secret = current_app.config["OTP_SECRET"]
        if not secret:
            return jsonify({"error": "Digest supplied but no server secret is configured"}), 400

    valid = otp_core.validate_code(
        data["code"],
        alphabet=data.get('alphabet'),
        templates=_pool_from(data),
        secret=secret,
        meta=data.get('meta'),
        stored_digest=stored_digest,
        **_digest_options(),
    )
    return jsonify({"valid": valid})


@otp_bp.route('/entropy', methods=['GET'])
def entropy_route():
    """
    MINIMUM ENTROPY OF A POOL

      curl "http://localhost:5000/entropy?pool=strong"
      curl "http://localhost:5000/entropy?templates=ABCABC,ABCCBA&alphabet=0123456789"
    """
    alphabet = otp_core.check_alphabet(request.args.get('alphabet') or otp_core.DEFAULT_ALPHABET)
    pool = _pool_from(request.args)
    bits = otp_core.calc_pool_entropy_bits(pool, len(alphabet))
    return jsonify({"entropy_bits": bits, "alphabet_length": len(alphabet)})


@otp_bp.route('/templates', methods=['GET'])
def templates_route():
    """Built-in pools with their entropy on the default alphabet."""
    alphabet_len = len(otp_core.DEFAULT_ALPHABET)
    return jsonify({
        "alphabet": otp_core.DEFAULT_ALPHABET,
        "pools": {
            name: {
                "templates": [t.name for t in pool],
                "entropy_bits": otp_core.calc_pool_entropy_bits(pool, alphabet_len),
            }
            for name, pool in otp_core.TEMPLATE_POOLS.items()
        },
    })
