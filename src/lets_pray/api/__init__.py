"""Web API layer."""

from lets_pray.api.app import create_app
from lets_pray.api.dependencies import get_app_state

__all__ = ["create_app", "get_app_state"]
