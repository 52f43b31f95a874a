"""Crossposter: share Notion reading-list articles on Bluesky and X."""

__version__ = "0.1.0"
