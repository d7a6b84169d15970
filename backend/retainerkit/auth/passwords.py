"""
Password hashing capability.

The rest of the application only sees the ``PasswordHasher`` interface; the
passlib-backed implementation is injected through ``get_password_hasher``.
"""
from typing import Protocol

from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 8


class PasswordHasher(Protocol):
    def hash_password(self, password: str) -> str:
        ...

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        ...


class PasswordHandler:
    """bcrypt password hashing via passlib."""

    def __init__(self, rounds: int = 12):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash_password(self, password: str) -> str:
        """
        Hash a password.

        Args:
            password: Plain text password

        Returns:
            str: Hashed password
        """
        return self.context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password

        Returns:
            bool: True if password matches, False otherwise
        """
        return self.context.verify(plain_password, hashed_password)


_default_hasher = PasswordHandler()


# PUBLIC_INTERFACE
def get_password_hasher() -> PasswordHasher:
    """Dependency returning the process-wide password hasher."""
    return _default_hasher
