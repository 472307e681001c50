"""Domain layer: descriptors, state machine, ledger and their errors."""

from .ledger import CallLedger, ErrorEntry, RecentCalls
from .registry import ServerRegistry
from .tracker import ConnectionTracker

__all__ = [
    "CallLedger",
    "ConnectionTracker",
    "ErrorEntry",
    "RecentCalls",
    "ServerRegistry",
]
