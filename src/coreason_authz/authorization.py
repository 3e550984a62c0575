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
AuthorizationService component for orchestrating validation, flow resolution and issuance.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_authz.async_context import get_current_user
from coreason_authz.clients import ClientDirectory
from coreason_authz.code_issuer import AuthorizationCodeIssuer
from coreason_authz.exceptions import (
    AuthorizationRequestError,
    CoreasonAuthzError,
    LoginRequiredError,
    UnsupportedOperationError,
)
from coreason_authz.flow import OIDCFlow, requested_tokens, resolve_flow
from coreason_authz.models import (
    AuthorizationCode,
    AuthorizationCodePayload,
    AuthorizationRequest,
    AuthorizationResponse,
    AuthorizationResult,
    Client,
    TokenSet,
)
from coreason_authz.provider_config import ProviderConfiguration
from coreason_authz.request_validator import AuthorizationRequestValidator
from coreason_authz.utils.logger import anonymize, logger

tracer = trace.get_tracer(__name__)


class TokenIssuer(Protocol):
    """Issues access and ID tokens for implicit and hybrid responses. Signing happens there."""

    async def issue_tokens(
        self,
        *,
        request: AuthorizationRequest,
        user_id: str,
        flow: OIDCFlow,
        include_access_token: bool,
        include_id_token: bool,
        code: str | None = None,
    ) -> TokenSet:
        """
        Issues the requested tokens.

        Args:
            request: The validated authorization request (carries nonce and state).
            user_id: The authenticated user's subject identifier.
            flow: The resolved flow.
            include_access_token: Whether response_type contains "token".
            include_id_token: Whether response_type contains "id_token".
            code: The issued authorization code in the hybrid flow, for computing c_hash.

        Returns:
            TokenSet: The issued tokens.
        """
        ...


class AuthorizationService:
    """
    Entry point for authorization requests.

    Validates the request, resolves the flow and dispatches to the flow handler. Nothing is
    issued for a request that fails validation, and each validated request issues at most once.

    Attributes:
        validator (AuthorizationRequestValidator): The request validator.
        code_issuer (AuthorizationCodeIssuer): Mints and stores authorization codes.
        token_issuer (TokenIssuer | None): External token issuer for implicit and hybrid flows.
    """

    def __init__(
        self,
        client_directory: ClientDirectory,
        provider: ProviderConfiguration,
        code_issuer: AuthorizationCodeIssuer,
        token_issuer: TokenIssuer | None = None,
    ) -> None:
        self.provider = provider
        self.validator = AuthorizationRequestValidator(client_directory, provider)
        self.code_issuer = code_issuer
        self.token_issuer = token_issuer

    async def validate_authorization_request(self, request: AuthorizationRequest) -> Client:
        """
        Validates the request without issuing anything.

        Raises:
            AuthorizationRequestError: The first violation found.
        """
        return await self.validator.validate(request)

    async def process_authorization_request(
        self, request: AuthorizationRequest, user_id: str | None = None
    ) -> AuthorizationResult:
        """
        Processes an authorization request for the authenticated user.

        Emits an OpenTelemetry span `process_authorization_request`.

        Args:
            request: The inbound authorization request.
            user_id: The authenticated user. Defaults to the user in the async context.

        Returns:
            AuthorizationResult: The resolved flow, the response parameters and the issued code (if any).

        Raises:
            AuthorizationRequestError: If validation fails or no user is authenticated.
            UnsupportedOperationError: If a token flow is requested but no token issuer is configured.
            CodeIssuanceError: If a unique code could not be stored.
        """
        with tracer.start_as_current_span("process_authorization_request") as span:
            try:
                await self.validator.validate(request)

                flow = resolve_flow(request.response_type)
                span.set_attribute("oidc.flow", flow.value)

                user_id = user_id or get_current_user()
                if not user_id:
                    raise LoginRequiredError()

                if flow is OIDCFlow.AUTHORIZATION_CODE:
                    result = await self._handle_authorization_code_flow(request, user_id)
                elif flow is OIDCFlow.IMPLICIT:
                    result = await self._handle_implicit_flow(request, user_id)
                else:
                    result = await self._handle_hybrid_flow(request, user_id)
            except CoreasonAuthzError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            logger.info(
                f"Authorization request processed: client={request.client_id} flow={flow.value} "
                f"user={anonymize(user_id, self.code_issuer.config.pii_salt)}"
            )
            span.set_status(Status(StatusCode.OK))
            return result

    def error_response(self, error: AuthorizationRequestError, state: str | None = None) -> AuthorizationResponse:
        """Builds the error parameters returned to the client's redirect_uri."""
        return error.error_response(state=state)

    async def _issue_code(
        self,
        request: AuthorizationRequest,
        user_id: str,
        before_save: Callable[[AuthorizationCode], Awaitable[None]] | None = None,
    ) -> AuthorizationCode:
        payload = AuthorizationCodePayload(
            user_id=user_id,
            client_id=request.client_id,
            redirect_uri=request.redirect_uri,
            scope=request.scope,
            code_challenge=request.code_challenge,
            code_challenge_method=request.code_challenge_method,
            nonce=request.nonce,
        )
        return await self.code_issuer.issue_and_store(payload, before_save=before_save)

    def _require_token_issuer(self, flow: OIDCFlow) -> TokenIssuer:
        if self.token_issuer is None:
            raise UnsupportedOperationError(f"No token issuer configured for the {flow.value} flow")
        return self.token_issuer

    async def _handle_authorization_code_flow(
        self, request: AuthorizationRequest, user_id: str
    ) -> AuthorizationResult:
        auth_code = await self._issue_code(request, user_id)
        response = AuthorizationResponse(code=auth_code.code, state=request.state)
        return AuthorizationResult(flow=OIDCFlow.AUTHORIZATION_CODE, response=response, authorization_code=auth_code)

    async def _handle_implicit_flow(self, request: AuthorizationRequest, user_id: str) -> AuthorizationResult:
        token_issuer = self._require_token_issuer(OIDCFlow.IMPLICIT)
        tokens = requested_tokens(request.response_type)

        token_set = await token_issuer.issue_tokens(
            request=request,
            user_id=user_id,
            flow=OIDCFlow.IMPLICIT,
            include_access_token="token" in tokens,
            include_id_token="id_token" in tokens,
        )
        response = AuthorizationResponse(**token_set.model_dump(), state=request.state)
        return AuthorizationResult(flow=OIDCFlow.IMPLICIT, response=response)

    async def _handle_hybrid_flow(self, request: AuthorizationRequest, user_id: str) -> AuthorizationResult:
        # Checked before minting so a misconfiguration never leaves an orphan code
        token_issuer = self._require_token_issuer(OIDCFlow.HYBRID)
        tokens = requested_tokens(request.response_type)

        issued: list[TokenSet] = []

        # Tokens are bound to the code, so they are issued before the code is stored
        async def issue_tokens(auth_code: AuthorizationCode) -> None:
            issued.append(
                await token_issuer.issue_tokens(
                    request=request,
                    user_id=user_id,
                    flow=OIDCFlow.HYBRID,
                    include_access_token="token" in tokens,
                    include_id_token="id_token" in tokens,
                    code=auth_code.code,
                )
            )

        auth_code = await self._issue_code(request, user_id, before_save=issue_tokens)
        token_set = issued[-1]
        response = AuthorizationResponse(**token_set.model_dump(), code=auth_code.code, state=request.state)
        return AuthorizationResult(flow=OIDCFlow.HYBRID, response=response, authorization_code=auth_code)
