"""Simple-python reading filter: run user Python code on each reading of a batch."""

__version__ = "1.0.0"
