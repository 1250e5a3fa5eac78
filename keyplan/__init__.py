"""
Keyplan - separation-of-duties automation for KeyHub directories.

Plans the minimal ordered sequence of directory changes needed to reach a
declared target state, including temporary elevations and their rollback,
and executes it with two (or three) authenticated principals.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("keyplan")
except PackageNotFoundError:
    # Package not installed, fallback to pyproject.toml
    __version__ = "0.1.0"

__author__ = "Keyplan Contributors"
