"""
Custom Exception Classes for the Token Forge System

This module defines the exception classes raised by the token forge library and its
MCP server. Ordinary input mistakes (blank names, over-cap taxes, malformed addresses)
are NOT exceptions: they are collected as data by the allocation engine's validate()
so a form can show every problem at once. Exceptions are reserved for the cases where
a caller asked for something that cannot be produced.

Exception Categories:
- Configuration Errors: Malformed environment settings detected at import time
- Forge Errors: A transaction payload was requested for a form that failed validation
- Input Errors: Tool input that cannot be parsed into a token form at all

Usage:
    Catch these in the service layer and turn them into user-friendly messages while
    keeping detailed logging for debugging purposes.
"""
from typing import List, Sequence


class ConfigurationError(Exception):
    """Raised when there are configuration-related errors."""


class InvalidFormDataError(Exception):
    """Raised when tool input cannot be decoded into a token form."""


class InvalidForgeConfigError(Exception):
    """Raised when a forge payload is requested for a form that does not validate.

    The complete list of validation messages is kept on ``errors`` in the same
    order validate() produced them.
    """

    def __init__(self, errors: Sequence[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid token configuration")
