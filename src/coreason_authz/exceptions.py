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
Custom exceptions for the coreason-authz package.

Request-time errors derive from `AuthorizationRequestError` and carry the OAuth 2.0
`error` code used when the rejection is reported back to the client.
"""

from enum import StrEnum
from typing import ClassVar

from coreason_authz.models import AuthorizationResponse


class CoreasonAuthzError(Exception):
    """Base exception for all coreason-authz errors."""


class ConfigurationError(CoreasonAuthzError):
    """
    Raised when the provider metadata is invalid.
    The provider must not serve traffic with an invalid configuration.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class AuthorizationRequestError(CoreasonAuthzError):
    """
    Base class for errors that reject an authorization request.

    Attributes:
        error_code (str): The OAuth 2.0 error code (RFC 6749 section 4.1.2.1).
        error_description (str): Human readable description of the rejection.
    """

    error_code: ClassVar[str] = "invalid_request"

    def __init__(self, error_description: str) -> None:
        super().__init__(error_description)
        self.error_description = error_description

    def error_response(self, state: str | None = None) -> AuthorizationResponse:
        return AuthorizationResponse(
            error=self.error_code,
            error_description=self.error_description,
            state=state,
        )


class ClientErrorReason(StrEnum):
    NOT_REGISTERED = "not_registered"
    DISABLED = "disabled"


class ClientError(AuthorizationRequestError):
    """Raised when the client is unknown or has been disabled."""

    error_code = "unauthorized_client"

    def __init__(self, reason: ClientErrorReason, client_id: str) -> None:
        if reason is ClientErrorReason.NOT_REGISTERED:
            message = f"Client {client_id} is not registered"
        else:
            message = f"Client {client_id} is disabled"
        super().__init__(message)
        self.reason = reason
        self.client_id = client_id


class RedirectUriError(AuthorizationRequestError):
    """Raised when the redirect_uri is malformed or not registered for the client."""

    def __init__(self, redirect_uri: str) -> None:
        super().__init__("Requested redirect_uri is not valid")
        self.redirect_uri = redirect_uri


class ScopeErrorReason(StrEnum):
    MISSING_OPENID = "missing_openid"
    UNSUPPORTED = "unsupported"


class ScopeError(AuthorizationRequestError):
    """Raised when the scope omits openid or requests scopes the provider does not support."""

    error_code = "invalid_scope"

    def __init__(self, reason: ScopeErrorReason, unsupported_scopes: list[str] | None = None) -> None:
        self.unsupported_scopes = list(unsupported_scopes or [])
        if reason is ScopeErrorReason.MISSING_OPENID:
            message = "Must include openid"
        else:
            message = f"Scope not supported: {', '.join(self.unsupported_scopes)}"
        super().__init__(message)
        self.reason = reason


class ResponseTypeErrorReason(StrEnum):
    UNSUPPORTED = "unsupported"
    NOT_ALLOWED_FOR_CLIENT = "not_allowed_for_client"


class ResponseTypeError(AuthorizationRequestError):
    """Raised when the response_type is unsupported by the provider or not allowed for the client."""

    def __init__(self, reason: ResponseTypeErrorReason, response_type: str, client_id: str | None = None) -> None:
        if reason is ResponseTypeErrorReason.UNSUPPORTED:
            message = f"Unsupported response type: {response_type}"
        else:
            message = f'Response type "{response_type}" is not allowed for client {client_id}'
        super().__init__(message)
        self.reason = reason
        self.response_type = response_type
        self.client_id = client_id

    @property
    def error_code(self) -> str:  # type: ignore[override]
        if self.reason is ResponseTypeErrorReason.UNSUPPORTED:
            return "unsupported_response_type"
        return "unauthorized_client"


class NonceError(AuthorizationRequestError):
    """Raised when an implicit or hybrid request omits the nonce."""

    def __init__(self) -> None:
        super().__init__("Nonce is required for implicit and hybrid flows")


class LoginRequiredError(AuthorizationRequestError):
    """Raised when no authenticated user is available to bind the authorization to."""

    error_code = "login_required"

    def __init__(self) -> None:
        super().__init__("End-user authentication is required")


class CodeCollisionError(CoreasonAuthzError):
    """Raised by a code repository when a code value is already stored. Retryable."""


class CodeIssuanceError(CoreasonAuthzError):
    """Raised when a unique authorization code could not be stored."""


class CodeNotFoundError(CoreasonAuthzError):
    """Raised when an authorization code does not exist in the repository."""


class CodeAlreadyUsedError(CoreasonAuthzError):
    """Raised when an authorization code is redeemed more than once."""


class UnsupportedOperationError(CoreasonAuthzError):
    """Raised when a collaborator lacks an optional capability."""
