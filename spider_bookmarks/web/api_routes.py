"""
Category, bookmark and chat API routes.

Every route requires a logged-in user. Records are always looked up first
and their owner compared with the session user before anything is changed;
the owner id is taken from the session, never from the request body.
"""

import logging
import re
import traceback
from flask import Blueprint, request, jsonify, current_app

from ..core.auth import UserContext, get_storage, login_required

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')

# JSON body key -> storage field
BOOKMARK_FIELDS = {
    'name': 'name',
    'url': 'url',
    'username': 'username',
    'password': 'password',
    'categoryId': 'category_id',
}


class ValidationError(ValueError):
    pass


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _required_text(data: dict, key: str, label: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{label} is required')
    return value


def _optional_text(data: dict, key: str, label: str):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{label} must be a string')
    return value


def _optional_category_id(data: dict):
    """Accepts an int, a numeric string, or null/empty for no category"""
    value = data.get('categoryId')
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError('Category id must be an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError('Category id must be an integer')


LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def _leading_int(value):
    """Integer prefix of a query value, so "3abc" reads as 3 and "abc" as None"""
    match = LEADING_INT.match(value or '')
    return int(match.group(1)) if match else None


def _owns_category(category_id: int, user_id: int) -> bool:
    category = get_storage().get_category_by_id(category_id)
    return category is not None and category.user_id == user_id


def _server_error(action: str, e: Exception):
    logger.error(f"Error {action}: {e}")
    logger.error(traceback.format_exc())
    return jsonify({'message': f'An error occurred {action}'}), 500


###############################################################################
# Categories
###############################################################################
@api_bp.route('/categories', methods=['GET'])
@login_required
def list_categories():
    categories = get_storage().get_categories(UserContext.get_user_id())
    return jsonify([c.to_dict() for c in categories])


@api_bp.route('/categories', methods=['POST'])
@login_required
def create_category():
    try:
        data = _json_body()
        name = _required_text(data, 'name', 'Category name').strip()
    except ValidationError as e:
        return jsonify({'message': str(e)}), 400

    try:
        category = get_storage().create_category(name, UserContext.get_user_id())
    except Exception as e:
        return _server_error('creating the category', e)

    logger.info(f"User {category.user_id} created category {category.id}")
    return jsonify(category.to_dict()), 201


@api_bp.route('/categories/<int:category_id>', methods=['DELETE'])
@login_required
def delete_category(category_id):
    storage = get_storage()
    category = storage.get_category_by_id(category_id)

    if not category:
        return jsonify({'message': 'Category not found'}), 404

    if category.user_id != UserContext.get_user_id():
        return jsonify({'message': 'Not authorized to delete this category'}), 403

    if storage.delete_category(category_id):
        return jsonify({'message': 'Category deleted successfully'})
    return jsonify({'message': 'Failed to delete category'}), 500


###############################################################################
# Bookmarks
###############################################################################
@api_bp.route('/bookmarks', methods=['GET'])
@login_required
def list_bookmarks():
    """All of the user's bookmarks, or one category's with ?categoryId="""
    user_id = UserContext.get_user_id()
    storage = get_storage()
    category_id = _leading_int(request.args.get('categoryId'))

    if category_id:
        if not _owns_category(category_id, user_id):
            return jsonify({'message': 'Not authorized to access this category'}), 403
        bookmarks = [b for b in storage.get_bookmarks_by_category(category_id) if b.user_id == user_id]
    else:
        bookmarks = storage.get_bookmarks(user_id)

    return jsonify([b.to_dict() for b in bookmarks])


@api_bp.route('/bookmarks/<int:bookmark_id>', methods=['GET'])
@login_required
def get_bookmark(bookmark_id):
    bookmark = get_storage().get_bookmark_by_id(bookmark_id)

    if not bookmark:
        return jsonify({'message': 'Bookmark not found'}), 404

    if bookmark.user_id != UserContext.get_user_id():
        return jsonify({'message': 'Not authorized to access this bookmark'}), 403

    return jsonify(bookmark.to_dict())


@api_bp.route('/bookmarks', methods=['POST'])
@login_required
def create_bookmark():
    user_id = UserContext.get_user_id()
    try:
        data = _json_body()
        category_id = _optional_category_id(data)
        if category_id is not None and not _owns_category(category_id, user_id):
            return jsonify({'message': 'Not authorized to use this category'}), 403

        fields = {
            'name': _required_text(data, 'name', 'Name'),
            'url': _required_text(data, 'url', 'URL'),
            'username': _optional_text(data, 'username', 'Username'),
            'password': _optional_text(data, 'password', 'Password'),
            'category_id': category_id,
        }
    except ValidationError as e:
        return jsonify({'message': str(e)}), 400

    try:
        bookmark = get_storage().create_bookmark(user_id=user_id, **fields)
    except Exception as e:
        return _server_error('creating the bookmark', e)

    return jsonify(bookmark.to_dict()), 201


@api_bp.route('/bookmarks/<int:bookmark_id>', methods=['PUT'])
@login_required
def update_bookmark(bookmark_id):
    """Partial update; keys other than the editable fields are ignored"""
    user_id = UserContext.get_user_id()
    storage = get_storage()
    bookmark = storage.get_bookmark_by_id(bookmark_id)

    if not bookmark:
        return jsonify({'message': 'Bookmark not found'}), 404

    if bookmark.user_id != user_id:
        return jsonify({'message': 'Not authorized to update this bookmark'}), 403

    try:
        data = _json_body()
        changes = {}
        if 'name' in data:
            changes['name'] = _required_text(data, 'name', 'Name')
        if 'url' in data:
            changes['url'] = _required_text(data, 'url', 'URL')
        if 'username' in data:
            changes['username'] = _optional_text(data, 'username', 'Username')
        if 'password' in data:
            changes['password'] = _optional_text(data, 'password', 'Password')
        if 'categoryId' in data:
            changes['category_id'] = _optional_category_id(data)
    except ValidationError as e:
        return jsonify({'message': str(e)}), 400

    new_category = changes.get('category_id')
    if new_category is not None and new_category != bookmark.category_id:
        if not _owns_category(new_category, user_id):
            return jsonify({'message': 'Not authorized to use this category'}), 403

    try:
        updated = storage.update_bookmark(bookmark_id, changes)
    except Exception as e:
        return _server_error('updating the bookmark', e)

    if updated:
        return jsonify(updated.to_dict())
    return jsonify({'message': 'Failed to update bookmark'}), 500


@api_bp.route('/bookmarks/<int:bookmark_id>', methods=['DELETE'])
@login_required
def delete_bookmark(bookmark_id):
    storage = get_storage()
    bookmark = storage.get_bookmark_by_id(bookmark_id)

    if not bookmark:
        return jsonify({'message': 'Bookmark not found'}), 404

    if bookmark.user_id != UserContext.get_user_id():
        return jsonify({'message': 'Not authorized to delete this bookmark'}), 403

    if storage.delete_bookmark(bookmark_id):
        return jsonify({'message': 'Bookmark deleted successfully'})
    return jsonify({'message': 'Failed to delete bookmark'}), 500


###############################################################################
# Chat assistant
###############################################################################
@api_bp.route('/chat', methods=['POST'])
@login_required
def chat():
    prompt_manager = current_app.extensions['prompt_manager']
    data = request.get_json(silent=True) or {}

    try:
        messages = prompt_manager.validate_messages(data.get('messages') if isinstance(data, dict) else None)
    except ValueError as e:
        return jsonify({'message': str(e)}), 400

    try:
        engine = current_app.extensions['chat_engine']
        response = engine.generate_response(prompt_manager.build_messages(messages))
        return jsonify(response)
    except Exception as e:
        logger.error(f"Chat API error: {e}")
        logger.error(traceback.format_exc())
        return jsonify({
            'message': 'An error occurred while processing your request',
            'error': str(e),
        }), 500
