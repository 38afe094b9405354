"""SkylineAnalyzr: Manhattan office-to-residential conversion analytics."""

__version__ = "1.0.0"
