"""Housing Desk - maintenance request dispatch backend."""

__version__ = "1.0.0"
