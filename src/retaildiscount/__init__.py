"""retaildiscount: retail bill discount engine and CLI."""

__version__ = "0.1.0"
