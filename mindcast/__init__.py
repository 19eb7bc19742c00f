"""
MindCast - a personal mood companion client.

This package classifies a short utterance about how the user feels, narrates a
reflective "podcast" tailored to that mood, and keeps a local mood journal.
"""

__version__ = "0.1.0"
