"""Password hashing helpers."""

from passlib.context import CryptContext

# pbkdf2 keeps hashing independent of the native bcrypt wheel.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plain password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hashed version."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


__all__ = ["hash_password", "verify_password", "pwd_context"]
