#!/usr/bin/env python3
"""
icons.py - Centralized icon/emoji definitions for ScormLens CLI output

Usage:
    from scormlens.icons import SUCCESS, WARNING, ERROR
    print(f"{SUCCESS} Done!")

All unicode characters are defined here once. Never edit unicode
characters in other files - import from this module instead.
"""

import logging
from dataclasses import dataclass


@dataclass(frozen=True)
class Icons:
    """
    Centralized icon definitions.

    Categories:
    - Status: SUCCESS, ERROR, WARNING, INFO, DEBUG
    - Repair: FIX
    - Content: PAGE, VIDEO, AUDIO, IMAGE, SCRIPT, STYLE, FILE, CAPTION
    - Package: PACKAGE, QUIZ, MODULE, LIST
    """

    # =========================================================================
    # Status Icons
    # =========================================================================
    SUCCESS: str = "✅"      # Green checkmark - operation succeeded
    ERROR: str = "❌"        # Red X - operation failed
    WARNING: str = "⚠️"      # Warning triangle
    INFO: str = "ℹ️"         # Information
    DEBUG: str = "🔍"       # Magnifier - debug detail
    CRITICAL: str = "💥"    # Explosion - unrecoverable

    # =========================================================================
    # Repair Icons
    # =========================================================================
    FIX: str = "🔧"         # Wrench - fix applied

    # =========================================================================
    # Content Type Icons
    # =========================================================================
    PAGE: str = "📄"        # Markup page
    VIDEO: str = "🎬"       # Video clip
    AUDIO: str = "🔊"       # Audio clip
    IMAGE: str = "🖼"       # Image
    SCRIPT: str = "📜"      # JavaScript
    STYLE: str = "🎨"       # Stylesheet
    FILE: str = "📎"        # Anything else
    CAPTION: str = "💬"     # Caption/transcript file

    # =========================================================================
    # Package Icons
    # =========================================================================
    PACKAGE: str = "📦"     # Package/archive
    QUIZ: str = "❓"        # Assessment/question
    MODULE: str = "📚"      # Organization item
    LIST: str = "📋"        # List/clipboard


# Global singleton instance
icons = Icons()

# Also export individual icons for convenience
SUCCESS = icons.SUCCESS
ERROR = icons.ERROR
WARNING = icons.WARNING
INFO = icons.INFO
DEBUG = icons.DEBUG
CRITICAL = icons.CRITICAL
FIX = icons.FIX
PAGE = icons.PAGE
VIDEO = icons.VIDEO
AUDIO = icons.AUDIO
IMAGE = icons.IMAGE
SCRIPT = icons.SCRIPT
STYLE = icons.STYLE
FILE = icons.FILE
CAPTION = icons.CAPTION
PACKAGE = icons.PACKAGE
QUIZ = icons.QUIZ
MODULE = icons.MODULE
LIST = icons.LIST

# Per-level icons for IconLogFormatter
LEVEL_ICONS = {
    logging.DEBUG: DEBUG,
    logging.INFO: SUCCESS,
    logging.WARNING: WARNING,
    logging.ERROR: ERROR,
    logging.CRITICAL: CRITICAL,
}


# =========================================================================
# Helper Functions
# =========================================================================

def status_icon(success: bool) -> str:
    """Return SUCCESS or ERROR icon based on boolean."""
    return SUCCESS if success else ERROR


def category_icon(category: str) -> str:
    """Return icon for a content-file category key."""
    type_map = {
        "html": PAGE,
        "videos": VIDEO,
        "audio": AUDIO,
        "images": IMAGE,
        "javascript": SCRIPT,
        "css": STYLE,
        "captions": CAPTION,
    }
    return type_map.get(category.lower(), FILE)
