"""
Authentication routes: register, login, logout and the current user.
"""

import logging
import traceback
from flask import Blueprint, request, jsonify

from ..core.auth import (
    UserContext,
    compare_passwords,
    get_storage,
    hash_password,
    login_required,
    login_user,
    logout_user,
)
from ..database.storage import DuplicateUsernameError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def _credentials():
    """Pull username and password out of a JSON or form body"""
    data = request.get_json(silent=True) or request.form
    if not hasattr(data, 'get'):
        return None, None
    username = data.get('username')
    password = data.get('password')
    if not isinstance(username, str) or not isinstance(password, str):
        return None, None
    return username, password


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create an account and log it in"""
    username, password = _credentials()
    if not username or not password:
        return jsonify({'message': 'Username and password are required'}), 400

    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'message': f'Password must be at least {MIN_PASSWORD_LENGTH} characters'}), 400

    storage = get_storage()
    try:
        if storage.get_user_by_username(username):
            return jsonify({'message': 'Username already exists'}), 400

        user = storage.create_user(username, hash_password(password))
    except DuplicateUsernameError:
        return jsonify({'message': 'Username already exists'}), 400
    except Exception as e:
        logger.error(f"Registration error: {e}")
        logger.error(traceback.format_exc())
        return jsonify({'message': 'An error occurred during registration'}), 500

    login_user(user)
    logger.info(f"Registered new user {user.id}")
    return jsonify(user.to_dict()), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Check credentials and start a session"""
    username, password = _credentials()
    if not username or not password:
        return jsonify({'message': 'Username and password are required'}), 400

    logger.info(f"Attempting login for username: {username}")
    try:
        user = get_storage().get_user_by_username(username)
    except Exception as e:
        logger.error(f"Login error: {e}")
        logger.error(traceback.format_exc())
        return jsonify({'message': 'An error occurred during login'}), 500

    if not user:
        logger.info(f"User not found: {username}")
        return jsonify({'message': 'Invalid username or password'}), 401

    if not compare_passwords(password, user.password):
        logger.info(f"Password mismatch for: {username}")
        return jsonify({'message': 'Invalid username or password'}), 401

    login_user(user)
    logger.info(f"Login successful for: {username}")
    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """End the session; safe to call when already logged out"""
    user_id = UserContext.get_user_id()
    logout_user()
    if user_id is not None:
        logger.info(f"Logged out user {user_id}")
    return jsonify({'message': 'Logged out successfully'})


@auth_bp.route('/user', methods=['GET'])
@login_required
def current_user():
    return jsonify(UserContext.get_current_user().to_dict())
