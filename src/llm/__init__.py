"""Utilities supporting generative API interactions."""

# Submodules are imported explicitly by callers; ``runtime.environment`` wires
# them together.
__all__ = ["client", "decoding", "errors", "queue", "retry"]
