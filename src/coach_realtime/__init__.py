"""Real-time change propagation for a coaching practice backend."""

__version__ = "0.1.0"
