"""
HTTP API package.
"""

from nearme.api.app import create_app

__all__ = ["create_app"]
