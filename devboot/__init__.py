"""devboot: idempotent developer workstation bootstrap."""

__version__ = "0.1.0"
