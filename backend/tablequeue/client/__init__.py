"""Polling client with offline simulation fallback."""

from tablequeue.client.api_client import Authoritative, QueueApiClient, Unavailable
from tablequeue.client.reconciler import ClientReconciler, SyncMode
from tablequeue.client.simulation import simulate_tick

__all__ = [
    "Authoritative",
    "Unavailable",
    "QueueApiClient",
    "ClientReconciler",
    "SyncMode",
    "simulate_tick",
]
