"""Fill in player positions and grades on league stats tables."""

__version__ = "0.1.0"
