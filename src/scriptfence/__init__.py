"""scriptfence - URL applicability and blacklist engine for user scripts."""

__version__ = "0.3.0"
