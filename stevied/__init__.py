"""Regular-expression compiling and matching, and buffer searches, for a vi-like editor."""

__version__ = "3.7.1"