"""
Discord integration - REST client and status message reconciliation
"""

from .client import DiscordClient
from .errors import DiscordApiError, DiscordNotFoundError
from .reconciler import ReconcileOutcome, StatusMessageReconciler

__all__ = [
    "DiscordClient",
    "DiscordApiError",
    "DiscordNotFoundError",
    "ReconcileOutcome",
    "StatusMessageReconciler",
]
