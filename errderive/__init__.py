"""Declarative exception classes with message templates, source chaining and conversions."""

__version__ = "0.1.0"
__all__ = ["attrs", "template", "model", "validate", "derive"]