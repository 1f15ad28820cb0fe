"""bullscope - Terminal dashboard for BullMQ queue monitoring."""

__version__ = "0.1.0"

__all__ = ["__version__"]
