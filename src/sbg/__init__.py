"""Storyboard generator: script, portraits, scene images and dialogue from reference material."""

__version__ = "0.1.0"
