from pathlib import Path
import os
from typing import Dict, Any
from dotenv import load_dotenv

from ..database.db import is_memory_url

# Load environment variables from .env file
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).parent.parent

STORAGE_BACKENDS = ('memory', 'sql')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class Config:
    """Base configuration class"""
    # Server settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    PORT = int(os.getenv('PORT', '5000'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Session settings
    SESSION_SECRET = os.getenv('SESSION_SECRET', 'multilogin-bookmark-manager-secret')
    SESSION_LIFETIME_DAYS = int(os.getenv('SESSION_LIFETIME_DAYS', '7'))

    # Storage settings
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'memory').lower()
    DATABASE_URL = os.getenv('DATABASE_URL', f'sqlite:///{BASE_DIR}/database/bookmarks.db')

    # Chat assistant settings
    OLLAMA_URL = os.getenv('OLLAMA_URL', 'http://localhost:11434')
    OLLAMA_TIMEOUT = float(os.getenv('OLLAMA_TIMEOUT', '60'))

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Return every upper-case setting as a plain dict"""
        return {
            name: getattr(cls, name)
            for name in dir(cls)
            if name.isupper()
        }

    @classmethod
    def validate(cls, settings: Dict[str, Any] = None) -> Dict[str, Any]:
        """Validate configuration settings, optionally with overrides applied"""
        values = cls.as_dict()
        if settings:
            values.update(settings)

        problems = []

        if not values.get('SESSION_SECRET'):
            problems.append('SESSION_SECRET must not be empty')

        if values.get('STORAGE_BACKEND') not in STORAGE_BACKENDS:
            problems.append(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}"
            )

        if values.get('STORAGE_BACKEND') == 'sql':
            database_url = values.get('DATABASE_URL')
            if not database_url:
                problems.append('DATABASE_URL is required for the sql storage backend')
            elif is_memory_url(database_url) and not values.get('TESTING'):
                problems.append('In-memory SQLite DATABASE_URL is only allowed when TESTING')

        port = values.get('PORT')
        if not _is_int(port) or not 1 <= port <= 65535:
            problems.append('PORT must be an integer between 1 and 65535')

        timeout = values.get('OLLAMA_TIMEOUT')
        if not (_is_int(timeout) or isinstance(timeout, float)) or timeout <= 0:
            problems.append('OLLAMA_TIMEOUT must be a positive number of seconds')

        if values.get('LOG_LEVEL') not in LOG_LEVELS:
            problems.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        if values.get('SESSION_LIFETIME_DAYS', 0) <= 0:
            problems.append('SESSION_LIFETIME_DAYS must be positive')

        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")

        return {
            'debug': values['DEBUG'],
            'storage_backend': values['STORAGE_BACKEND'],
            'database_url': values['DATABASE_URL'] if values['STORAGE_BACKEND'] == 'sql' else None,
            'ollama_url': values['OLLAMA_URL'],
            'session_lifetime_days': values['SESSION_LIFETIME_DAYS'],
        }
