"""
UWF Journal API Module

FastAPI application over the journal service.
"""

from .main import create_app

__all__ = ["create_app"]
