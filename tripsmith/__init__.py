"""Tripsmith: cycling and trekking route synthesis."""

__version__ = "0.3.0"
