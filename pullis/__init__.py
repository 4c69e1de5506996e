"""GitHub pull request notifications for Slack."""

__version__ = "0.1.0"
