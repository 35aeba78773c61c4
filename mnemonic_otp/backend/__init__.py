"""
Backend package: REST API for mnemonic-otp using Flask.
"""

from .app import create_app

__all__ = ['create_app']
