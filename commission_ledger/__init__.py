"""Commission ledger and withdrawal settlement service."""

__version__ = "1.0.0"
