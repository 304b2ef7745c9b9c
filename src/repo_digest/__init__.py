"""Flatten a directory tree into a single digest for LLM consumption."""

__version__ = "0.1.0"
