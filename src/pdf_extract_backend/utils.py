"""
Utility functions for upload identifiers and filesystem path safety.

This module provides helper functions for:
- Generating opaque upload identifiers
- Validating caller-supplied path segments before they touch the disk
- Ensuring directory creation with proper error handling
"""

from __future__ import annotations

import re
from pathlib import Path
from uuid import uuid4

# A single path segment: alphanumerics, dots, underscores and hyphens,
# never starting with a dot (rules out "..", hidden staging dirs and "")
SAFE_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")

MAX_SEGMENT_LENGTH = 255


def new_upload_id() -> str:
    """
    Generate a fresh upload identifier.

    uuid4 draws from the operating system's CSPRNG, so collisions are not a
    practical concern; the processor still refuses to overwrite an existing
    directory if one ever happens.

    Returns:
        A 32 character lowercase hex string
    """
    return uuid4().hex


def is_safe_segment(value: str) -> bool:
    """
    Check whether a caller-supplied value is usable as one path segment.

    Args:
        value: An upload id or image file name

    Returns:
        True if the value contains no separators, traversal sequences,
        absolute-path markers or other characters outside the safe set

    Example:
        >>> is_safe_segment("page1_image1.png")
        True
        >>> is_safe_segment("../../etc/passwd")
        False
    """
    if not value or len(value) > MAX_SEGMENT_LENGTH:
        return False
    if ".." in value:
        return False
    return SAFE_SEGMENT_PATTERN.fullmatch(value) is not None


def resolve_inside(root: Path, *segments: str) -> Path | None:
    """
    Join segments onto root and confirm the result stays inside root.

    Args:
        root: The directory callers must not escape
        *segments: Path segments, each already checked with is_safe_segment

    Returns:
        The resolved path, or None if it would land outside root
    """
    base = root.resolve()
    candidate = base.joinpath(*segments).resolve()
    if candidate == base or base not in candidate.parents:
        return None
    return candidate


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
