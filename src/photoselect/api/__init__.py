"""HTTP surface of photoselect."""

from .app import create_app

__all__ = ["create_app"]
