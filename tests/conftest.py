"""Shared fixtures for mnemonic-otp tests."""

import logging

import pytest

from mnemonic_otp.log_handler import LOGGER_NAME

SECRET = b"supersecretkey-supersecretkey"

META = {
    "email": "user@example.com",
    "purpose": "login",
    "attemptId": "123e4567-e89b-12d3-a456-426614174000",
    "attemptNonce": "4f1b2c3d4e5f60718293a4b5c6d7e8f9",
    "issuedAt": 1736200000000,
}


class CyclingRandom:
    """rng stub returning 0, 1, 2, ... modulo the requested range; records calls."""

    def __init__(self):
        self.seq = 0
        self.calls = []

    def __call__(self, n):
        self.calls.append(n)
        value = self.seq % n
        self.seq += 1
        return value


@pytest.fixture
def cycling_rng():
    return CyclingRandom()


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def meta():
    return dict(META)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """configure_logging() binds a handler to the current stderr; drop it after each test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
