"""In-memory user accounts for the practice login."""

import hashlib
import hmac
import secrets
import time
import uuid

from pydantic import BaseModel

_PBKDF2_ITERATIONS = 200_000


class User(BaseModel):
    id: str
    email: str
    username: str
    created_at: float = 0.0


class _StoredUser(BaseModel):
    user: User
    salt: str
    password_hash: str


# ---------------------------------------------------------------------------
# In-memory store (email -> account)
# ---------------------------------------------------------------------------

_users: dict[str, _StoredUser] = {}


def _hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ITERATIONS
    ).hex()


def _key(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(email: str) -> User | None:
    stored = _users.get(_key(email))
    return stored.user if stored else None


def get_user(user_id: str) -> User | None:
    for stored in _users.values():
        if stored.user.id == user_id:
            return stored.user
    return None


def create_user(email: str, password: str, username: str) -> User | None:
    """Create an account. Returns None when the email is already registered."""
    key = _key(email)
    if key in _users:
        return None
    salt = secrets.token_hex(16)
    user = User(id=str(uuid.uuid4()), email=key, username=username.strip(), created_at=time.time())
    _users[key] = _StoredUser(user=user, salt=salt, password_hash=_hash_password(password, salt))
    return user


def verify_credentials(email: str, password: str) -> User | None:
    stored = _users.get(_key(email))
    if stored is None:
        return None
    if not hmac.compare_digest(stored.password_hash, _hash_password(password, stored.salt)):
        return None
    return stored.user


def clear_users() -> None:
    _users.clear()
