"""
errors.py - Exception hierarchy for mnemonic-otp.

All errors are caller / configuration errors (bad template label, bad alphabet,
empty pool). A candidate code that fails validation is *not* an error: the
validator simply returns False.
"""


class MnemonicOTPError(ValueError):
    """Base class, subclass of ValueError so callers can catch either."""


class InvalidTemplate(MnemonicOTPError):
    """Template label is empty or contains characters outside A–Z."""


class InvalidAlphabet(MnemonicOTPError):
    """Alphabet has fewer than 2 symbols, duplicates, or lower-case symbols."""


class InvalidTemplatePool(MnemonicOTPError):
    """Template pool is empty."""


class MissingSecret(MnemonicOTPError):
    """A stored digest was supplied for verification without a secret key."""
