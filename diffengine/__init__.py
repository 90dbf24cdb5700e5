"""diffengine: parse, convert, locate, apply and refine diff hunks."""

__version__ = "0.1.0"
