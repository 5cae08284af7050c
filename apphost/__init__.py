"""
.. include:: ../README.md
"""

__all__ = [
    "application",
    "manifest",
    "dcp",
    "azure",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
