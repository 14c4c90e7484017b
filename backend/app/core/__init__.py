"""
Core module for application configuration and session logic.

The session engine and evaluation dispatch are not imported at package level
to avoid circular imports with app.models. Import them directly:
from app.core.session_engine import ...
"""
from .config import settings

__all__ = ["settings"]
