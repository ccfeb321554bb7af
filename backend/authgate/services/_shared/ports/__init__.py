"""
authgate.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts
between the token/verification services and their infrastructure.

Modules
-------
- :mod:`cache`:
    Defines :class:`~.SharedCache` -- key-value store with TTL, atomic
    increment and delete -- and :class:`~.InMemorySharedCache`.

- :mod:`denylist_store`:
    Defines :class:`~.TokenDenylistStore` -- revocation lookups by token id.

- :mod:`delivery_gateway`:
    Defines :class:`~.DeliveryGateway` -- outbound SMS delivery -- and the
    :class:`~.RecordingDeliveryGateway` test double.

- :mod:`user_directory`:
    Defines :class:`~.UserLookup` / :class:`~.UserDirectory` and
    :class:`~.InMemoryUserDirectory`.

Design Notes
------------
All these ports follow the *Dependency Inversion Principle* to keep the
service layer independent from Redis, HTTP clients or databases.
Concrete adapters live under ``authgate.infra``.
"""

from __future__ import annotations

from .cache import InMemorySharedCache, SharedCache
from .delivery_gateway import DeliveryGateway, RecordingDeliveryGateway, SentMessage
from .denylist_store import TokenDenylistStore
from .user_directory import InMemoryUserDirectory, User, UserDirectory, UserLookup

__all__ = [
    "SharedCache",
    "InMemorySharedCache",
    "TokenDenylistStore",
    "DeliveryGateway",
    "RecordingDeliveryGateway",
    "SentMessage",
    "UserLookup",
    "UserDirectory",
    "InMemoryUserDirectory",
    "User",
]
