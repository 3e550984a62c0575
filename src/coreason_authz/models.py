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
Data models for the coreason-authz package.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from coreason_authz.normalizer import normalize_response_type, split_tokens

DEFAULT_TOKEN_ENDPOINT_AUTH_METHODS = ("client_secret_basic",)
DEFAULT_GRANT_TYPES = ("authorization_code", "client_credentials", "refresh_token")
DEFAULT_CODE_CHALLENGE_METHODS = ("S256",)


class OIDCFlow(StrEnum):
    AUTHORIZATION_CODE = "authorization_code"
    IMPLICIT = "implicit"
    HYBRID = "hybrid"


class ProviderMetadata(BaseModel):
    """
    OpenID Provider metadata as configured by the operator.

    Accepts both snake_case names and the camelCase aliases (e.g. `jwksUri`).
    Semantic checks (required endpoints, mandatory values) are performed by
    `ProviderConfiguration`, so missing values default to empty here.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", alias_generator=to_camel, populate_by_name=True)

    issuer: str = ""
    authorization_endpoint: str = ""
    token_endpoint: str = ""
    userinfo_endpoint: str = ""
    jwks_uri: str = ""
    response_types_supported: tuple[str, ...] = ()
    subject_types_supported: tuple[str, ...] = ()
    id_token_signing_alg_values_supported: tuple[str, ...] = ()
    scopes_supported: tuple[str, ...] = ()
    claims_supported: tuple[str, ...] | None = None
    token_endpoint_auth_methods_supported: tuple[str, ...] | None = None
    grant_types_supported: tuple[str, ...] | None = None
    code_challenge_methods_supported: tuple[str, ...] | None = None


class DiscoveryDocument(BaseModel):
    """
    The document published at /.well-known/openid-configuration (OpenID Connect Discovery 1.0).
    """

    model_config = ConfigDict(frozen=True)

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    jwks_uri: str
    response_types_supported: list[str]
    subject_types_supported: list[str]
    id_token_signing_alg_values_supported: list[str]
    scopes_supported: list[str]
    claims_supported: list[str] | None = None
    token_endpoint_auth_methods_supported: list[str]
    grant_types_supported: list[str]
    code_challenge_methods_supported: list[str]

    def to_dict(self) -> dict[str, Any]:
        """Returns the JSON-serializable form, omitting claims_supported when unset."""
        return self.model_dump(mode="json", exclude_none=True)


class ScopeCheck(BaseModel):
    """Result of checking requested scopes against scopes_supported."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    unsupported_scopes: list[str] = Field(default_factory=list)


class Client(BaseModel):
    """
    A registered relying party, as stored in the client directory.

    Attributes:
        client_id (str): Unique client identifier.
        redirect_uris (tuple[str, ...]): Exact-match redirect URIs.
        response_types (tuple[str, ...]): response_type values the client may request.
        grant_types (tuple[str, ...]): Grant types the client may use at the token endpoint.
        token_endpoint_auth_method (str | None): Registered client authentication method.
        active (bool): Disabled clients are rejected before any other check.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    client_id: str
    redirect_uris: tuple[str, ...] = ()
    response_types: tuple[str, ...] = ("code",)
    grant_types: tuple[str, ...] = ("authorization_code",)
    token_endpoint_auth_method: str | None = None
    active: bool = True
    client_name: str | None = None

    def is_redirect_uri_allowed(self, redirect_uri: str) -> bool:
        # Exact string match (OAuth 2.0 Security BCP), no normalization
        return redirect_uri in self.redirect_uris

    def is_response_type_allowed(self, response_type: str) -> bool:
        requested = normalize_response_type(response_type)
        return any(normalize_response_type(allowed) == requested for allowed in self.response_types)


class AuthorizationRequest(BaseModel):
    """
    Parameters of an inbound authorization request. Never persisted.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    client_id: str
    redirect_uri: str
    scope: str
    response_type: str
    state: str | None = None
    nonce: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


class AuthorizationCodePayload(BaseModel):
    """
    The context an authorization code is bound to.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    client_id: str
    redirect_uri: str
    scope: list[str]
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    nonce: str | None = None

    @field_validator("scope", mode="before")
    @classmethod
    def parse_scope(cls, v: Any) -> list[str]:
        """Accepts a space-delimited string or an iterable; keeps first-seen order and drops duplicates."""
        if isinstance(v, str):
            tokens = split_tokens(v)
        elif isinstance(v, (list, tuple, set, frozenset)):
            tokens = [str(item).lower() for item in v if item is not None]
        else:
            raise ValueError("scope must be a string or a list of strings")
        return list(dict.fromkeys(tokens))


class AuthorizationCode(AuthorizationCodePayload):
    """
    An issued authorization code. Single use: `used` goes from False to True at most once.
    """

    code: str
    issued_at: datetime
    expires_at: datetime
    used: bool = False

    @property
    def ttl_seconds(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return now >= self.expires_at

    def __repr__(self) -> str:
        # The code value is a bearer credential and must not leak into logs
        return (
            f"AuthorizationCode(code='<REDACTED>', client_id={self.client_id!r}, "
            f"scope={self.scope!r}, expires_at={self.expires_at!r}, used={self.used!r})"
        )

    def __str__(self) -> str:
        return self.__repr__()


class TokenSet(BaseModel):
    """
    Tokens produced by the external token issuer for implicit and hybrid responses.
    """

    access_token: str | None = None
    token_type: str | None = None
    id_token: str | None = None
    expires_in: int | None = None


class AuthorizationResponse(BaseModel):
    """
    Parameters returned to the client's redirect_uri.
    """

    code: str | None = None
    access_token: str | None = None
    token_type: str | None = None
    id_token: str | None = None
    expires_in: int | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def to_params(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AuthorizationResult(BaseModel):
    """
    Outcome of processing an authorization request. The resolved flow travels with the response.
    """

    model_config = ConfigDict(frozen=True)

    flow: OIDCFlow
    response: AuthorizationResponse
    authorization_code: AuthorizationCode | None = None
