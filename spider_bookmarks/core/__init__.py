"""
Core functionality for SpiderBookmarks.
This package contains password hashing, the session-backed user
context and the chat assistant.
"""
