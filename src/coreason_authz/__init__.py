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
OpenID Connect authorization request validation, flow resolution and authorization code issuance.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .authorization import AuthorizationService, TokenIssuer
from .clients import ClientDirectory, InMemoryClientDirectory
from .code_issuer import AuthorizationCodeIssuer
from .code_repository import AuthorizationCodeRepository, InMemoryAuthorizationCodeRepository, SupportsCodeCleanup
from .config import CoreasonAuthzConfig, ProviderSettings
from .exceptions import (
    AuthorizationRequestError,
    ClientError,
    ClientErrorReason,
    CodeAlreadyUsedError,
    CodeCollisionError,
    CodeIssuanceError,
    CodeNotFoundError,
    ConfigurationError,
    CoreasonAuthzError,
    LoginRequiredError,
    NonceError,
    RedirectUriError,
    ResponseTypeError,
    ResponseTypeErrorReason,
    ScopeError,
    ScopeErrorReason,
    UnsupportedOperationError,
)
from .flow import OIDCFlow, resolve_flow
from .models import (
    AuthorizationCode,
    AuthorizationCodePayload,
    AuthorizationRequest,
    AuthorizationResponse,
    AuthorizationResult,
    Client,
    DiscoveryDocument,
    ProviderMetadata,
)
from .normalizer import normalize_response_type
from .provider_config import ProviderConfiguration
from .request_validator import AuthorizationRequestValidator

__all__ = [
    "AuthorizationCode",
    "AuthorizationCodeIssuer",
    "AuthorizationCodePayload",
    "AuthorizationCodeRepository",
    "AuthorizationRequest",
    "AuthorizationRequestError",
    "AuthorizationRequestValidator",
    "AuthorizationResponse",
    "AuthorizationResult",
    "AuthorizationService",
    "Client",
    "ClientDirectory",
    "ClientError",
    "ClientErrorReason",
    "CodeAlreadyUsedError",
    "CodeCollisionError",
    "CodeIssuanceError",
    "CodeNotFoundError",
    "ConfigurationError",
    "CoreasonAuthzConfig",
    "CoreasonAuthzError",
    "DiscoveryDocument",
    "InMemoryAuthorizationCodeRepository",
    "InMemoryClientDirectory",
    "LoginRequiredError",
    "NonceError",
    "OIDCFlow",
    "ProviderConfiguration",
    "ProviderMetadata",
    "ProviderSettings",
    "RedirectUriError",
    "ResponseTypeError",
    "ResponseTypeErrorReason",
    "ScopeError",
    "ScopeErrorReason",
    "SupportsCodeCleanup",
    "TokenIssuer",
    "UnsupportedOperationError",
    "normalize_response_type",
    "resolve_flow",
]
