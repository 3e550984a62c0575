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
AuthorizationCodeIssuer component for minting single-use authorization codes.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from functools import partial

from authlib.common.security import generate_token
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_authz.code_repository import AuthorizationCodeRepository, SupportsCodeCleanup
from coreason_authz.config import CoreasonAuthzConfig
from coreason_authz.exceptions import CodeCollisionError, CodeIssuanceError, UnsupportedOperationError
from coreason_authz.models import AuthorizationCode, AuthorizationCodePayload
from coreason_authz.utils.logger import anonymize, logger

tracer = trace.get_tracer(__name__)


class AuthorizationCodeIssuer:
    """
    Mints authorization codes bound to a user, client, redirect URI and scope.

    Attributes:
        repository (AuthorizationCodeRepository | None): Where `issue_and_store` persists codes.
        config (CoreasonAuthzConfig): TTL, retry and code length settings.
    """

    def __init__(
        self,
        repository: AuthorizationCodeRepository | None = None,
        generator: Callable[[], str] | None = None,
        config: CoreasonAuthzConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the AuthorizationCodeIssuer.

        Args:
            repository: The code repository. Required for `issue_and_store` and cleanup.
            generator: Produces fresh opaque code values. Defaults to Authlib's `generate_token`
                (system CSPRNG) with `config.code_length` characters.
            config: Settings. Defaults to `CoreasonAuthzConfig()` loaded from the environment.
            clock: Returns the current timezone-aware time. Defaults to UTC now.
        """
        self.repository = repository
        self.config = config or CoreasonAuthzConfig()
        self._generator = generator or partial(generate_token, self.config.code_length)
        self._clock = clock or (lambda: datetime.now(UTC))
        # Optional capability, resolved once here rather than per call
        self._cleanup: SupportsCodeCleanup | None = (
            repository if isinstance(repository, SupportsCodeCleanup) else None
        )

    @property
    def supports_cleanup(self) -> bool:
        return self._cleanup is not None

    def issue(self, payload: AuthorizationCodePayload, ttl_seconds: int | None = None) -> AuthorizationCode:
        """
        Mints a new, unused authorization code. Does not persist it.

        Args:
            payload: The context the code is bound to.
            ttl_seconds: Lifetime in seconds. Defaults to `config.auth_code_ttl` (600).

        Returns:
            AuthorizationCode: The code, with `used=False`.

        Raises:
            ValueError: If ttl_seconds is not positive.
        """
        ttl = self.config.auth_code_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl}")

        issued_at = self._clock()
        return AuthorizationCode(
            **payload.model_dump(),
            code=self._generator(),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=ttl),
            used=False,
        )

    async def issue_and_store(
        self,
        payload: AuthorizationCodePayload,
        ttl_seconds: int | None = None,
        before_save: Callable[[AuthorizationCode], Awaitable[None]] | None = None,
    ) -> AuthorizationCode:
        """
        Mints a code and saves it, regenerating the value if the repository reports a collision.

        `before_save` runs on each minted code before it is saved. If it raises, nothing is
        stored and the exception propagates. After a collision it runs again for the new code.

        Emits an OpenTelemetry span `issue_authorization_code`.

        Args:
            payload: The context the code is bound to.
            ttl_seconds: Lifetime in seconds. Defaults to `config.auth_code_ttl`.
            before_save: Optional async hook, e.g. issuing tokens bound to the code.

        Returns:
            AuthorizationCode: The stored code.

        Raises:
            CodeIssuanceError: If every attempt collided.
            UnsupportedOperationError: If no repository is configured.
        """
        if self.repository is None:
            raise UnsupportedOperationError("No authorization code repository configured")

        with tracer.start_as_current_span("issue_authorization_code") as span:
            span.set_attribute("oauth.client_id", payload.client_id)
            attempts = self.config.code_save_attempts

            for attempt in range(1, attempts + 1):
                auth_code = self.issue(payload, ttl_seconds)
                if before_save is not None:
                    await before_save(auth_code)
                try:
                    await self.repository.save(auth_code)
                except CodeCollisionError:
                    logger.warning(f"Authorization code collision (attempt {attempt}/{attempts}), regenerating")
                    span.add_event("code_collision", {"attempt": attempt})
                    continue

                user_hash = anonymize(payload.user_id, self.config.pii_salt)
                logger.info(f"Issued authorization code for client {payload.client_id} and user {user_hash}")
                span.set_status(Status(StatusCode.OK))
                return auth_code

            msg = f"Could not store a unique authorization code after {attempts} attempts"
            logger.error(msg)
            span.set_status(Status(StatusCode.ERROR, msg))
            raise CodeIssuanceError(msg)

    async def purge_expired(self) -> int:
        """
        Deletes expired codes from the repository.

        Raises:
            UnsupportedOperationError: If the repository does not support cleanup.
        """
        if self._cleanup is None:
            raise UnsupportedOperationError("Code repository does not support deleting expired codes")
        removed = await self._cleanup.delete_expired()
        logger.debug(f"Purged {removed} expired authorization codes")
        return removed

    async def revoke_client_codes(self, client_id: str) -> int:
        """
        Deletes every code issued to a client, e.g. when the client is removed.

        Raises:
            UnsupportedOperationError: If the repository does not support cleanup.
        """
        if self._cleanup is None:
            raise UnsupportedOperationError("Code repository does not support deleting codes by client")
        removed = await self._cleanup.delete_by_client_id(client_id)
        logger.info(f"Revoked {removed} authorization codes for client {client_id}")
        return removed
