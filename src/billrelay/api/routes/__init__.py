"""API Route modules."""

from . import billing, health, webhooks

__all__ = ["billing", "health", "webhooks"]
