"""Email marketing analytics over campaign, flow and subscriber exports."""

__version__ = "0.1.0"
