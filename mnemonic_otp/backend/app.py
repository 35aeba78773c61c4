"""
FLASK APP MAIN ENTRY POINT - MNEMONIC OTP SERVER
================================================

Sets up the Flask app, CORS and the OTP blueprint.

Configuration (environment, or a .env file in the working directory):
- MNEMONIC_OTP_SECRET            : HMAC key for binding codes to metadata
- MNEMONIC_OTP_DIGEST_ALGORITHM  : sha256 (default) | sha512
- MNEMONIC_OTP_DIGEST_ENCODING   : hex (default) | base64 | base64url
- MNEMONIC_OTP_POOL              : default (default) | strong
"""
import os

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from ..binding import DEFAULT_DIGEST_ALGORITHM, DEFAULT_DIGEST_ENCODING, DIGEST_ALGORITHMS, DIGEST_ENCODINGS
from ..log_handler import configure_logging
from ..otp_core import TEMPLATE_POOLS
from .routes import otp_bp


def load_config() -> dict:
    """Read OTP settings from the environment."""
    load_dotenv()
    return {
        "OTP_SECRET": os.getenv("MNEMONIC_OTP_SECRET"),
        "OTP_DIGEST_ALGORITHM": os.getenv("MNEMONIC_OTP_DIGEST_ALGORITHM", DEFAULT_DIGEST_ALGORITHM),
        "OTP_DIGEST_ENCODING": os.getenv("MNEMONIC_OTP_DIGEST_ENCODING", DEFAULT_DIGEST_ENCODING),
        "OTP_POOL": os.getenv("MNEMONIC_OTP_POOL", "default"),
    }


def create_app(config=None) -> Flask:
    """
    Build the Flask app.

    Arguments:
        config: overrides applied on top of the environment (tests use this)
    """
    log = configure_logging()
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)

    if app.config["OTP_DIGEST_ALGORITHM"] not in DIGEST_ALGORITHMS:
        raise ValueError(f"MNEMONIC_OTP_DIGEST_ALGORITHM must be one of {DIGEST_ALGORITHMS}")
    if app.config["OTP_DIGEST_ENCODING"] not in DIGEST_ENCODINGS:
        raise ValueError(f"MNEMONIC_OTP_DIGEST_ENCODING must be one of {DIGEST_ENCODINGS}")
    if app.config["OTP_POOL"] not in TEMPLATE_POOLS:
        raise ValueError(f"MNEMONIC_OTP_POOL must be one of {tuple(TEMPLATE_POOLS)}")
    if not app.config["OTP_SECRET"]:
        log.warning("MNEMONIC_OTP_SECRET not set, binding (bind/digest) requests will be refused")

    # Allow a frontend on another origin to call the API
    CORS(app)
    app.register_blueprint(otp_bp)

    @app.route('/', methods=['GET'])
    def index():
        return {
            "service": "mnemonic-otp",
            "endpoints": ["POST /generate", "POST /validate", "GET /entropy", "GET /templates"],
        }

    return app


if __name__ == '__main__':
    # Development server only
    create_app().run(debug=True, host='0.0.0.0', port=5000)
