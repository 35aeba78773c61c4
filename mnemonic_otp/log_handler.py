"""
log_handler.py - Console logging for the mnemonic_otp package logger.

Output goes to stderr so CLI stdout (codes, JSON) stays machine-readable.
"""
import logging
import sys

LOGGER_NAME = "mnemonic_otp"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a stderr handler to the package logger (once).

    Library modules only call logging.getLogger(__name__); the CLI and the REST
    app call this to actually see the messages.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Prevent creation of handlers more than once; re-point at the current stderr
    if logger.handlers:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setStream(sys.stderr)
        return logger

    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(name)s "
        "%(message)s  (in %(filename)s:%(lineno)d)"
    )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    return logger
