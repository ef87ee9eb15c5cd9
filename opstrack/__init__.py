"""OpsTrack - inventory ledger and business operations core."""

__version__ = "1.0.0"
