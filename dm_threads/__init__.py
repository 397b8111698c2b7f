"""Direct-message thread resolution and cross-surface synchronization."""

__version__ = "1.0.0"
