# bookshelf/auth.py
"""
Account registration and password login.

Accounts live in the ``users`` slot as a list of ``User`` records.
Passwords are hashed here on the server with salted PBKDF2-SHA256;
clients only ever send the plain password over the request body and
never receive a hash back.
"""

import hashlib
import logging
import secrets
import threading
from typing import List, Optional, Tuple

from pydantic import ValidationError

from .errors import (
    AuthenticationError,
    DuplicateEmailError,
    RegistrationError,
    SlotError,
)
from .models import PublicUser, User
from .storage import SlotStorage


logger = logging.getLogger(__name__)

USERS_KEY = "users"
PBKDF2_ITERATIONS = 120_000
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """Return a salt and hash for the given password using PBKDF2."""
    salt = salt or secrets.token_hex(16)
    hashed = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    ).hex()
    return salt, hashed


def verify_password(password: str, salt: str, password_hash: str) -> bool:
    _, hashed = hash_password(password, salt)
    return secrets.compare_digest(hashed, password_hash)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthService:
    def __init__(self, storage: SlotStorage):
        self.storage = storage
        # Held across read, duplicate check and write of the users slot
        self._lock = threading.Lock()

    def _read_users(self) -> List[User]:
        """Strict read: a corrupt users slot raises ``SlotError``."""
        raw = self.storage.read(USERS_KEY)
        if raw is None:
            return []
        try:
            return [User(**entry) for entry in raw]
        except (TypeError, ValidationError) as exc:
            raise SlotError(f"Malformed users slot: {exc}") from exc

    def _load_users(self) -> List[User]:
        try:
            return self._read_users()
        except SlotError as exc:
            logger.error("Error loading users: %s", exc)
            return []

    def _find(self, email: str) -> Optional[User]:
        wanted = _normalize_email(email)
        return next((u for u in self._load_users() if u.email == wanted), None)

    def user_count(self) -> int:
        return len(self._load_users())

    def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: Optional[str] = None,
    ) -> PublicUser:
        """Create an account.

        Read and write errors on the users slot propagate as ``SlotError``;
        a corrupt slot is never overwritten.
        """
        username = (username or "").strip()
        email = _normalize_email(email)
        if len(username) < 2:
            raise RegistrationError("Username must be at least 2 characters")
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise RegistrationError("Enter a valid email address")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise RegistrationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if confirm_password is not None and confirm_password != password:
            raise RegistrationError("Passwords do not match")

        salt, hashed = hash_password(password)

        with self._lock:
            users = self._read_users()
            if any(u.email == email for u in users):
                raise DuplicateEmailError("Email already registered")

            user = User(
                id=max((u.id for u in users), default=0) + 1,
                username=username,
                email=email,
                password_hash=hashed,
                salt=salt,
            )
            users.append(user)
            self.storage.write(USERS_KEY, [u.model_dump() for u in users])

        logger.info("Registered user %d", user.id)
        return user.public()

    def login(self, email: str, password: str) -> PublicUser:
        """Check credentials and return the account without its password."""
        user = self._find(email)
        if user is None or not verify_password(password or "", user.salt, user.password_hash):
            logger.info("Failed login attempt for %s", _normalize_email(email))
            raise AuthenticationError("Invalid email or password")
        logger.info("Login successful for user %d", user.id)
        return user.public()
