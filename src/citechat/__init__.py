"""Document-grounded topic chat with resolvable page citations."""

__version__ = "0.1.0"
