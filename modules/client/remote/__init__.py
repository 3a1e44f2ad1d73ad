"""
Remote Collaborators.

Adapters for the backend that owns durable note storage, authentication
and change notification.
"""

from modules.client.remote.base import RemoteCollaborator, Unsubscribe
from modules.client.remote.feed import LocalChangeFeed
from modules.client.remote.memory import InMemoryRemote

__all__ = [
    "InMemoryRemote",
    "LocalChangeFeed",
    "RemoteCollaborator",
    "Unsubscribe",
]
