"""
Derby Rounds Real-time Broadcast.

Round event catalogue and push channels for observers.
"""

from src.realtime.broadcast import (
    BroadcastChannel,
    LocalBroadcast,
    MultiBroadcast,
    SupabaseBroadcast,
)
from src.realtime.events import EventPayload, RoundEvent

__all__ = [
    "BroadcastChannel",
    "EventPayload",
    "LocalBroadcast",
    "MultiBroadcast",
    "RoundEvent",
    "SupabaseBroadcast",
]
