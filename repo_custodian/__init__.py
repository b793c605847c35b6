"""repo-custodian: GitHub repository maintenance bot."""

__version__ = "0.1.0"
