# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_authz

"""
Client directory contract and an in-memory implementation.
"""

from collections.abc import Iterable
from typing import Any, Protocol

import anyio

from coreason_authz.exceptions import CoreasonAuthzError
from coreason_authz.models import Client


class ClientDirectory(Protocol):
    """Resolves client identifiers to registered clients."""

    async def find_by_id(self, client_id: str) -> Client | None:
        """
        Retrieves a client by ID.

        Args:
            client_id: The ID of the client to retrieve.

        Returns:
            The client, or None if it is not registered.
        """
        ...


class InMemoryClientDirectory:
    """
    Dictionary-backed client directory. Suitable for tests and single-process deployments.
    """

    def __init__(self, clients: Iterable[Client] = ()) -> None:
        self._clients: dict[str, Client] = {client.client_id: client for client in clients}
        self._lock: anyio.Lock | None = None

    def _get_lock(self) -> anyio.Lock:
        # Created lazily so the directory can be built outside an event loop
        if self._lock is None:
            self._lock = anyio.Lock()
        return self._lock

    async def find_all(self) -> list[Client]:
        return list(self._clients.values())

    async def find_by_id(self, client_id: str) -> Client | None:
        return self._clients.get(client_id)

    async def save(self, client: Client) -> Client:
        async with self._get_lock():
            if client.client_id in self._clients:
                raise CoreasonAuthzError(f"Client {client.client_id} is already registered")
            self._clients[client.client_id] = client
            return client

    async def update(self, client_id: str, data: dict[str, Any]) -> Client:
        """
        Applies a partial update to a registered client.

        Raises:
            CoreasonAuthzError: If the client is unknown or the update would change its ID.
        """
        async with self._get_lock():
            current = self._clients.get(client_id)
            if current is None:
                raise CoreasonAuthzError(f"Client {client_id} is not registered")
            if data.get("client_id", client_id) != client_id:
                raise CoreasonAuthzError("client_id cannot be changed")
            updated = Client.model_validate({**current.model_dump(), **data})
            self._clients[client_id] = updated
            return updated

    async def delete(self, client_id: str) -> None:
        async with self._get_lock():
            if self._clients.pop(client_id, None) is None:
                raise CoreasonAuthzError(f"Client {client_id} is not registered")
