"""
HTTP API for sowdiff.
"""

from sowdiff.api.main import create_app

__all__ = ["create_app"]
