"""
sowdiff: Statement-of-Work comparison against a reference template.

This package parses DOCX contracts into numbered/titled sections, aligns the
sections of a draft against a template, reports formatting drift and merges
language-model review findings into one report.
"""

__version__ = "0.1.0"
__author__ = "sowdiff Team"

from sowdiff.config import get_settings

__all__ = ["get_settings", "__version__"]
