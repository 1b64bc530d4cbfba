"""
Larder offline-first household inventory package.

The package keeps pantry items, grocery entries, and households in a local SQLite store
and reconciles them with a shared remote document store in the background.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
