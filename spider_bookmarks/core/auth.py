"""
Password hashing and session-backed user context.

The session only ever holds the user's id. The user record is re-loaded
from storage on every request and cached on ``flask.g``.
"""

import hashlib
import hmac
import logging
import secrets
from functools import wraps
from typing import Optional

from flask import session, g, current_app, jsonify

from ..database.records import User

logger = logging.getLogger(__name__)

SALT_BYTES = 16
KEY_LENGTH = 64
# Node's crypto.scrypt defaults, so existing hashes stay valid
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1


def _scrypt(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode('utf-8'),
        salt=salt.encode('utf-8'),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    """Hash a password as "<hex digest>.<hex salt>" with a fresh random salt"""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{_scrypt(password, salt).hex()}.{salt}"


def compare_passwords(supplied: str, stored: str) -> bool:
    """Constant-time check of a supplied password against a stored hash"""
    hashed, sep, salt = (stored or '').partition('.')
    if not sep or not hashed or not salt:
        return False
    try:
        stored_digest = bytes.fromhex(hashed)
    except ValueError:
        return False
    return hmac.compare_digest(stored_digest, _scrypt(supplied, salt))


def get_storage():
    """Storage backend registered on the current app"""
    return current_app.extensions['storage']


class UserContext:
    """Static class for managing user context"""

    @staticmethod
    def get_current_user() -> Optional[User]:
        """Get the current user from the context, loading it from the session"""
        if 'user' not in g:
            user_id = session.get('user_id')
            g.user = None
            if user_id is not None:
                g.user = get_storage().get_user(user_id)
                if g.user is None:
                    logger.warning(f"User ID {user_id} from session not found, clearing session")
                    session.clear()
        return g.user

    @staticmethod
    def set_current_user(user: Optional[User]) -> None:
        """Start a fresh session for the user, or end the current one"""
        _regenerate_session()
        g.user = user
        if user:
            session['user_id'] = user.id
            session.permanent = True
            logger.info(f"Set user in session: {user.id}")

    @staticmethod
    def is_authenticated() -> bool:
        return UserContext.get_current_user() is not None

    @staticmethod
    def get_user_id() -> Optional[int]:
        user = UserContext.get_current_user()
        return user.id if user else None


def _regenerate_session() -> None:
    """Drop the old session id, where supported, and its contents"""
    interface = current_app.session_interface
    if hasattr(interface, 'regenerate'):
        # Only acts on a non-empty session, so it must run before clear()
        interface.regenerate(session)
    session.clear()


def login_user(user: User) -> None:
    UserContext.set_current_user(user)


def logout_user() -> None:
    UserContext.set_current_user(None)


def login_required(f):
    """Decorator to require an authenticated user for an API route"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not UserContext.is_authenticated():
            return jsonify({'message': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function
