"""
exceptions.py
Error types shared by the console (backend failures, validation, auth, config).
"""

from __future__ import annotations


class ConsoleError(Exception):
    """Base exception for all console errors."""


class BackendError(ConsoleError):
    """A query, mutation or network call to the backend failed."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(ConsoleError):
    """
    A form payload was rejected locally, before any backend call.
    `errors` maps field name -> first violated rule message.
    """

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = dict(errors)


class AuthenticationError(ConsoleError):
    """Sign-in was rejected by the auth backend."""


class ConfigurationError(ConsoleError):
    """Configuration is invalid or missing."""
