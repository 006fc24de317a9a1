"""Bridge between reading batches and user-supplied Python code."""

__all__ = [
    "controller",
    "errors",
    "interpreter",
    "marshal",
    "metrics",
    "plugin",
    "readings",
    "run",
    "session",
    "state",
    "tracking",
]
