"""
API route modules.
"""

from sowdiff.api.routes import analysis, documents

__all__ = ["analysis", "documents"]
