"""Retrieval-augmented chat over uploaded documents and web pages."""

__version__ = "0.1.0"
