"""TubeMagic - AI YouTube automation studio."""

__version__ = "0.1.0"
