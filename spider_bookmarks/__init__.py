"""
SpiderBookmarks: a personal bookmark manager with per-user accounts,
categories and an AI assistant for organization tips.
"""

__version__ = '0.1.0'
