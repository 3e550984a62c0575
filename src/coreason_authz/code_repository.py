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
Authorization code persistence contracts and an in-memory implementation.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

import anyio

from coreason_authz.exceptions import CodeAlreadyUsedError, CodeCollisionError, CodeNotFoundError
from coreason_authz.models import AuthorizationCode


class AuthorizationCodeRepository(Protocol):
    """Stores issued authorization codes."""

    async def save(self, auth_code: AuthorizationCode) -> None:
        """
        Stores a new authorization code.

        Raises:
            CodeCollisionError: If a code with the same value is already stored.
        """
        ...

    async def find_by_code(self, code: str) -> AuthorizationCode | None:
        """Returns the stored code, or None if it does not exist."""
        ...

    async def mark_as_used(self, code: str) -> None:
        """
        Marks a code as redeemed. Must succeed at most once per code.

        Raises:
            CodeNotFoundError: If the code does not exist.
            CodeAlreadyUsedError: If the code was already redeemed.
        """
        ...


@runtime_checkable
class SupportsCodeCleanup(Protocol):
    """Optional repository capability for removing codes in bulk."""

    async def delete_expired(self) -> int:
        """Deletes expired codes and returns how many were removed."""
        ...

    async def delete_by_client_id(self, client_id: str) -> int:
        """Deletes every code issued to a client and returns how many were removed."""
        ...


class InMemoryAuthorizationCodeRepository:
    """
    Dictionary-backed code repository. Not suitable for multi-process deployments.

    Check-and-set operations run under an anyio lock, so a code can be marked used only once
    even under concurrent redemption.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._codes: dict[str, AuthorizationCode] = {}
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock: anyio.Lock | None = None

    def _get_lock(self) -> anyio.Lock:
        if self._lock is None:
            self._lock = anyio.Lock()
        return self._lock

    def __len__(self) -> int:
        return len(self._codes)

    async def save(self, auth_code: AuthorizationCode) -> None:
        async with self._get_lock():
            if auth_code.code in self._codes:
                raise CodeCollisionError("Authorization code already exists")
            self._codes[auth_code.code] = auth_code

    async def find_by_code(self, code: str) -> AuthorizationCode | None:
        return self._codes.get(code)

    async def mark_as_used(self, code: str) -> None:
        async with self._get_lock():
            stored = self._codes.get(code)
            if stored is None:
                raise CodeNotFoundError("Authorization code not found")
            if stored.used:
                raise CodeAlreadyUsedError("Authorization code has already been used")
            self._codes[code] = stored.model_copy(update={"used": True})

    async def delete_expired(self) -> int:
        async with self._get_lock():
            now = self._clock()
            expired = [key for key, value in self._codes.items() if value.is_expired(now)]
            for key in expired:
                del self._codes[key]
            return len(expired)

    async def delete_by_client_id(self, client_id: str) -> int:
        async with self._get_lock():
            matching = [key for key, value in self._codes.items() if value.client_id == client_id]
            for key in matching:
                del self._codes[key]
            return len(matching)
