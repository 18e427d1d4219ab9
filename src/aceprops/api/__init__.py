"""
API HTTP de aceprops.
"""

from aceprops.api.app import create_app
from aceprops.api.auth import Authenticator

__all__ = ["create_app", "Authenticator"]
