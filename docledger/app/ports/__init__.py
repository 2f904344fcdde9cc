"""Port interfaces for the docledger application layer.

These protocol interfaces define contracts for adapters.
The registry depends on these ports, never on concrete implementations.
"""

__all__ = [
    "EventSinkPort",
    "JournalPort",
]

from docledger.app.ports.events import EventSinkPort
from docledger.app.ports.journal import JournalPort
