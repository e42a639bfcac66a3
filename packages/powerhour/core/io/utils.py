"""Path sanitization helpers."""

import re


def sanitize_path_component(component: str) -> str:
    """
    Sanitize a string for use as a single filesystem path component.

    Names made only of dots (``.``, ``..``) would address the current or
    parent folder, so their dots are replaced too.

    Args:
        component: String to sanitize

    Returns:
        Filesystem-safe string

    Example:
        >>> sanitize_path_component("lib/a:b")
        'lib_a_b'
        >>> sanitize_path_component("drinking_sound-1.wav")
        'drinking_sound-1.wav'
        >>> sanitize_path_component("..")
        '__'
    """
    safe = re.sub(r"[^a-zA-Z0-9._-]", "_", component)
    if not safe.strip("."):
        return "_" * max(len(safe), 1)
    return safe


def is_safe_path_component(component: str) -> bool:
    """True if ``component`` is already a single safe path component."""
    return bool(component) and sanitize_path_component(component) == component
