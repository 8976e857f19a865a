"""
Email/password identity provider for company managers.

Accounts live in the `identities` table with salted SHA-256 password
hashes. Signing in issues an HS256 JWT; signing out records the token hash
in `revoked_tokens` so the token is rejected afterwards.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from pcm.database import get_db_connection

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6


class IdentityError(Exception):
    """Identity failure with a stable machine-readable code."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ============================================================================
# PASSWORD UTILITIES
# ============================================================================

def hash_password(password: str) -> str:
    """Hash a password using SHA-256 with salt."""
    salt = secrets.token_hex(16)
    password_hash = hashlib.sha256((salt + password).encode()).hexdigest()
    return f"{salt}:{password_hash}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a password against its stored hash."""
    try:
        salt, password_hash = stored_hash.split(':')
        computed_hash = hashlib.sha256((salt + password).encode()).hexdigest()
        return secrets.compare_digest(computed_hash, password_hash)
    except (ValueError, AttributeError):
        return False


def get_token_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


# ============================================================================
# PROVIDER
# ============================================================================

class IdentityProvider:
    """Issues and validates bearer tokens for registered emails."""

    def __init__(self, db_path: str, secret_key: str, token_expiry_hours: int = 24):
        if not secret_key:
            raise ValueError("A secret key is required to sign tokens")
        self.db_path = db_path
        self.secret_key = secret_key
        self.token_expiry_hours = token_expiry_hours

    def create_user(self, email: str, password: str):
        email = email.strip().lower()
        if len(password) < PASSWORD_MIN_LENGTH:
            raise IdentityError(
                'weak-password',
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
            )

        with get_db_connection(self.db_path) as conn:
            existing = conn.execute(
                "SELECT email FROM identities WHERE email = ?", (email,)
            ).fetchone()
            if existing:
                raise IdentityError('email-already-in-use', "Email is already registered")
            conn.execute(
                "INSERT INTO identities (email, password_hash, created_at) VALUES (?, ?, ?)",
                (email, hash_password(password), datetime.now(timezone.utc).isoformat())
            )
        logger.info(f"Identity created: {email}")

    def delete_user(self, email: str):
        email = email.strip().lower()
        with get_db_connection(self.db_path) as conn:
            conn.execute("DELETE FROM identities WHERE email = ?", (email,))
        logger.info(f"Identity deleted: {email}")

    def authenticate(self, email: str, password: str) -> str:
        """Check credentials and return the normalized email."""
        email = email.strip().lower()
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT password_hash FROM identities WHERE email = ?", (email,)
            ).fetchone()

        if row is None or not verify_password(password, row['password_hash']):
            logger.warning(f"Failed sign-in for {email}")
            raise IdentityError('invalid-credential', "Invalid email or password")
        return email

    def issue_token(self, email: str, claims: Optional[Dict[str, Any]] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': email,
            'iat': now,
            'exp': now + timedelta(hours=self.token_expiry_hours),
            # distinguishes tokens issued within the same second
            'jti': secrets.token_hex(8),
        }
        payload.update(claims or {})
        return jwt.encode(payload, self.secret_key, algorithm='HS256')

    def sign_in(self, email: str, password: str, claims: Optional[Dict[str, Any]] = None) -> str:
        return self.issue_token(self.authenticate(email, password), claims)

    def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=['HS256'])
        except JWTError as e:
            logger.warning(f"Token validation failed: {e}")
            raise IdentityError('invalid-token', "Invalid or expired token") from e

        with get_db_connection(self.db_path) as conn:
            revoked = conn.execute(
                "SELECT 1 FROM revoked_tokens WHERE token_hash = ?", (get_token_hash(token),)
            ).fetchone()
        if revoked:
            raise IdentityError('invalid-token', "Token has been revoked")
        return payload

    def sign_out(self, token: str):
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "INSERT OR IGNORE INTO revoked_tokens (token_hash, revoked_at) VALUES (?, ?)",
                (get_token_hash(token), datetime.now(timezone.utc).isoformat())
            )
