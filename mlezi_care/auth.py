"""
Authentication boundary for the login screen.

There is no credential store: ``FakeAuthProvider`` only validates the form.
A real provider implements the same ``authenticate`` call.
"""

import re
from typing import Protocol

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


class LoginError(Exception):
    """The login form was rejected. The message is shown inline."""


class AuthProvider(Protocol):
    def authenticate(self, email: str, password: str) -> str:
        """Return the identity to log in as, or raise ``LoginError``."""
        ...


class FakeAuthProvider:
    """Accepts any non-empty password with a well-formed email."""

    def authenticate(self, email: str, password: str) -> str:
        if not email or not password:
            raise LoginError("Please enter both email and password.")
        if not EMAIL_PATTERN.search(email):
            raise LoginError("Please enter a valid email address.")
        return email
