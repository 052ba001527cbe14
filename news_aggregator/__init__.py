"""Always-running RSS archive with keyword search."""

__version__ = "0.3.0"
