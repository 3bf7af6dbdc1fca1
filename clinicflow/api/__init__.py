"""Clients for the clinic backend."""

from .base import ApiClient
from .transcription_client import TranscriptionClient
from .suggestion_client import SuggestionClient
from .billing_client import BillingClient, build_billing_payload

__all__ = [
    "ApiClient",
    "TranscriptionClient",
    "SuggestionClient",
    "BillingClient",
    "build_billing_payload",
]
