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
ProviderConfiguration component: validated OpenID Provider metadata and the discovery document.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from coreason_authz.config import ProviderSettings
from coreason_authz.exceptions import ConfigurationError
from coreason_authz.models import (
    DEFAULT_CODE_CHALLENGE_METHODS,
    DEFAULT_GRANT_TYPES,
    DEFAULT_TOKEN_ENDPOINT_AUTH_METHODS,
    DiscoveryDocument,
    ProviderMetadata,
    ScopeCheck,
)
from coreason_authz.normalizer import normalize_response_type, split_tokens
from coreason_authz.utils.logger import logger
from coreason_authz.utils.urls import is_valid_url

# Checked in this order; the first failure is reported
_URL_FIELDS = ("issuer", "authorization_endpoint", "token_endpoint", "userinfo_endpoint", "jwks_uri")
_REQUIRED_VALUES = (
    ("response_types_supported", "code"),
    ("subject_types_supported", "public"),
    ("id_token_signing_alg_values_supported", "RS256"),
    ("scopes_supported", "openid"),
)


class ProviderConfiguration:
    """
    Validates and exposes the OpenID Provider metadata.

    The metadata is validated once, at construction. An instance only exists for a valid
    configuration and is immutable afterwards, so it can be shared across concurrent requests.

    Attributes:
        metadata (ProviderMetadata): The validated metadata.
    """

    def __init__(self, metadata: ProviderMetadata | Mapping[str, Any]) -> None:
        """
        Initialize and validate the ProviderConfiguration.

        Args:
            metadata: The provider metadata, as a model or a mapping with snake_case or camelCase keys.

        Raises:
            ConfigurationError: If the metadata is malformed or violates an OIDC requirement.
        """
        if not isinstance(metadata, ProviderMetadata):
            try:
                metadata = ProviderMetadata.model_validate(dict(metadata))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid provider metadata: {e}") from e

        self._metadata = metadata
        self._validate()
        logger.info(f"OpenID Provider configuration loaded for issuer {metadata.issuer}")

    @classmethod
    def from_settings(cls, settings: ProviderSettings | None = None) -> "ProviderConfiguration":
        """
        Builds the configuration from environment settings (prefix COREASON_OIDC_).

        Raises:
            ConfigurationError: If the settings cannot be loaded or are invalid.
        """
        if settings is None:
            try:
                settings = ProviderSettings()
            except ValidationError as e:
                raise ConfigurationError(f"Invalid provider settings: {e}") from e
        return cls(settings.model_dump())

    def _validate(self) -> None:
        for field in _URL_FIELDS:
            value = getattr(self._metadata, field)
            if not value:
                raise ConfigurationError(f"{field} is required!", field=field)
            if not is_valid_url(value):
                raise ConfigurationError(f"{field} must be a valid url!", field=field)

        for field, required in _REQUIRED_VALUES:
            values = getattr(self._metadata, field)
            if not values:
                raise ConfigurationError(f"At least one {field} must be included!", field=field)
            if required not in values:
                raise ConfigurationError(f"Must include '{required}' in {field}!", field=field)

    @property
    def metadata(self) -> ProviderMetadata:
        return self._metadata

    @property
    def issuer(self) -> str:
        return self._metadata.issuer

    @property
    def authorization_endpoint(self) -> str:
        return self._metadata.authorization_endpoint

    @property
    def token_endpoint(self) -> str:
        return self._metadata.token_endpoint

    @property
    def userinfo_endpoint(self) -> str:
        return self._metadata.userinfo_endpoint

    @property
    def jwks_uri(self) -> str:
        return self._metadata.jwks_uri

    @property
    def response_types_supported(self) -> tuple[str, ...]:
        return self._metadata.response_types_supported

    @property
    def subject_types_supported(self) -> tuple[str, ...]:
        return self._metadata.subject_types_supported

    @property
    def id_token_signing_alg_values_supported(self) -> tuple[str, ...]:
        return self._metadata.id_token_signing_alg_values_supported

    @property
    def scopes_supported(self) -> tuple[str, ...]:
        return self._metadata.scopes_supported

    @property
    def claims_supported(self) -> tuple[str, ...] | None:
        return self._metadata.claims_supported

    @property
    def token_endpoint_auth_methods_supported(self) -> tuple[str, ...] | None:
        return self._metadata.token_endpoint_auth_methods_supported

    @property
    def grant_types_supported(self) -> tuple[str, ...] | None:
        return self._metadata.grant_types_supported

    @property
    def code_challenge_methods_supported(self) -> tuple[str, ...] | None:
        return self._metadata.code_challenge_methods_supported

    def is_openid_included(self, scope: str) -> bool:
        """Returns True if the scope contains "openid" (case-insensitive)."""
        return "openid" in split_tokens(scope)

    def is_scope_supported(self, scope: str) -> ScopeCheck:
        """
        Checks every requested scope against scopes_supported (case-insensitive).

        Args:
            scope: The space-delimited scope parameter.

        Returns:
            ScopeCheck: `valid` and the unsupported scopes in request order, duplicates included.
        """
        supported = {s.lower() for s in self._metadata.scopes_supported}
        unsupported = [s for s in split_tokens(scope) if s not in supported]
        return ScopeCheck(valid=not unsupported, unsupported_scopes=unsupported)

    def is_response_type_supported(self, response_type: str) -> bool:
        """Returns True if response_type matches a supported value, ignoring token order and case."""
        requested = normalize_response_type(response_type)
        return any(normalize_response_type(s) == requested for s in self._metadata.response_types_supported)

    def is_code_challenge_method_supported(self, method: str) -> bool:
        return method in _or_default(self._metadata.code_challenge_methods_supported, DEFAULT_CODE_CHALLENGE_METHODS)

    def get_discovery_document(self) -> DiscoveryDocument:
        """
        Returns the discovery document, substituting defaults for unset optional fields.
        """
        m = self._metadata
        return DiscoveryDocument(
            issuer=m.issuer,
            authorization_endpoint=m.authorization_endpoint,
            token_endpoint=m.token_endpoint,
            userinfo_endpoint=m.userinfo_endpoint,
            jwks_uri=m.jwks_uri,
            response_types_supported=list(m.response_types_supported),
            subject_types_supported=list(m.subject_types_supported),
            id_token_signing_alg_values_supported=list(m.id_token_signing_alg_values_supported),
            scopes_supported=list(m.scopes_supported),
            claims_supported=list(m.claims_supported) if m.claims_supported is not None else None,
            token_endpoint_auth_methods_supported=_or_default(
                m.token_endpoint_auth_methods_supported, DEFAULT_TOKEN_ENDPOINT_AUTH_METHODS
            ),
            grant_types_supported=_or_default(m.grant_types_supported, DEFAULT_GRANT_TYPES),
            code_challenge_methods_supported=_or_default(
                m.code_challenge_methods_supported, DEFAULT_CODE_CHALLENGE_METHODS
            ),
        )


def _or_default(values: tuple[str, ...] | None, default: tuple[str, ...]) -> list[str]:
    return list(default if values is None else values)
