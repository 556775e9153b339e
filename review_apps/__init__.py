"""Review apps that follow the pull request lifecycle."""

__version__ = "0.1.0"
