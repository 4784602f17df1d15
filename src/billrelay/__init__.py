"""
billrelay - Stripe billing webhook relay.

Keeps member subscription tiers in sync with Stripe lifecycle events.
"""

__version__ = "0.1.0"
