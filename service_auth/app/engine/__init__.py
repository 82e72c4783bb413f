"""
Auth engine package.
"""

from .auth_engine import AuthEngine

__all__ = ["AuthEngine"]
