"""Provider compensation optimization toolkit."""

__version__ = "0.1.0"
