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
AuthorizationRequestValidator component for checking authorization requests.
"""

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_authz.clients import ClientDirectory
from coreason_authz.exceptions import (
    AuthorizationRequestError,
    ClientError,
    ClientErrorReason,
    NonceError,
    RedirectUriError,
    ResponseTypeError,
    ResponseTypeErrorReason,
    ScopeError,
    ScopeErrorReason,
)
from coreason_authz.flow import OIDCFlow, resolve_flow
from coreason_authz.models import AuthorizationRequest, Client
from coreason_authz.provider_config import ProviderConfiguration
from coreason_authz.utils.logger import logger
from coreason_authz.utils.urls import is_valid_url

tracer = trace.get_tracer(__name__)


class AuthorizationRequestValidator:
    """
    Validates authorization requests against the client directory and provider metadata.

    Checks run in a fixed order and stop at the first violation. The client is looked up first
    so that nothing else about the request is disclosed for unknown or disabled clients.

    Attributes:
        client_directory (ClientDirectory): Source of registered clients.
        provider (ProviderConfiguration): The validated provider metadata.
    """

    def __init__(self, client_directory: ClientDirectory, provider: ProviderConfiguration) -> None:
        self.client_directory = client_directory
        self.provider = provider

    async def validate(self, request: AuthorizationRequest) -> Client:
        """
        Validates the request.

        Emits an OpenTelemetry span `validate_authorization_request`.

        Args:
            request: The inbound authorization request.

        Returns:
            Client: The registered client the request was validated against.

        Raises:
            ClientError: If the client is not registered or disabled.
            RedirectUriError: If the redirect_uri is invalid or not registered.
            ScopeError: If openid is missing or a scope is unsupported.
            ResponseTypeError: If the response_type is unsupported or not allowed for the client.
            NonceError: If an implicit or hybrid request has no nonce.
        """
        with tracer.start_as_current_span("validate_authorization_request") as span:
            span.set_attribute("oauth.client_id", request.client_id)
            span.set_attribute("oauth.response_type", request.response_type)

            try:
                client = await self._validate_client(request.client_id)
                self._validate_redirect_uri(client, request.redirect_uri)
                self._validate_scope(request.scope)
                self._assert_response_type_supported(request.response_type)
                self._assert_response_type_allowed_for_client(client, request.response_type)
                self._check_for_nonce(request)
            except AuthorizationRequestError as e:
                logger.warning(f"Authorization request rejected for client {request.client_id}: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, e.error_code))
                raise

            span.set_status(Status(StatusCode.OK))
            return client

    async def _validate_client(self, client_id: str) -> Client:
        client = await self.client_directory.find_by_id(client_id)
        if client is None:
            raise ClientError(ClientErrorReason.NOT_REGISTERED, client_id)
        if not client.active:
            raise ClientError(ClientErrorReason.DISABLED, client_id)
        return client

    def _validate_redirect_uri(self, client: Client, redirect_uri: str) -> None:
        if not is_valid_url(redirect_uri) or not client.is_redirect_uri_allowed(redirect_uri):
            raise RedirectUriError(redirect_uri)

    def _validate_scope(self, scope: str) -> None:
        if not self.provider.is_openid_included(scope):
            raise ScopeError(ScopeErrorReason.MISSING_OPENID)

        check = self.provider.is_scope_supported(scope)
        if not check.valid:
            raise ScopeError(ScopeErrorReason.UNSUPPORTED, check.unsupported_scopes)

    def _assert_response_type_supported(self, response_type: str) -> None:
        if not self.provider.is_response_type_supported(response_type):
            raise ResponseTypeError(ResponseTypeErrorReason.UNSUPPORTED, response_type)

    def _assert_response_type_allowed_for_client(self, client: Client, response_type: str) -> None:
        if not client.is_response_type_allowed(response_type):
            raise ResponseTypeError(ResponseTypeErrorReason.NOT_ALLOWED_FOR_CLIENT, response_type, client.client_id)

    def _check_for_nonce(self, request: AuthorizationRequest) -> None:
        flow = resolve_flow(request.response_type)
        if flow in (OIDCFlow.IMPLICIT, OIDCFlow.HYBRID) and not request.nonce:
            raise NonceError()
