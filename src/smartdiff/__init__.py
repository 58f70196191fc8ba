"""smartdiff: render SMART room exports and diff them against a git reference."""

__version__ = '0.3.0'
