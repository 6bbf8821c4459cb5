"""Supplier performance evaluation: versioned scoring, tier classification and record lifecycle."""

__version__ = "1.0.0"
