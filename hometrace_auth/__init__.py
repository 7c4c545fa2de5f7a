"""Authentication and session-lifecycle layer for the HomeTrace platform."""

__version__ = "0.3.0"
