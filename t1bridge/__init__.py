"""Auto bridge bot for the T1 and L2 test networks."""

__version__ = "1.0.0"
