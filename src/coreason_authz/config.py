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
Configuration for the coreason-authz package.
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreasonAuthzConfig(BaseSettings):
    """
    Runtime settings for authorization code issuance.

    Attributes:
        auth_code_ttl (int): Default lifetime of an authorization code in seconds.
        code_save_attempts (int): Total attempts to store a code when the repository reports a collision.
        code_length (int): Length of generated authorization codes in characters.
        pii_salt (SecretStr): Salt for anonymizing user identifiers in logs and traces.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_AUTHZ_",
        case_sensitive=False,
    )

    auth_code_ttl: int = Field(default=600, gt=0, description="Authorization code lifetime in seconds.")
    code_save_attempts: int = Field(default=3, ge=1, description="Attempts before giving up on code collisions.")
    # 48 chars of [A-Za-z0-9] is ~285 bits, above the 128-bit floor of RFC 6749 section 10.10
    code_length: int = Field(default=48, ge=32, description="Generated authorization code length.")
    pii_salt: SecretStr = SecretStr("coreason-unsafe-default-salt")


class ProviderSettings(BaseSettings):
    """
    OpenID Provider metadata loaded from the environment (prefix COREASON_OIDC_).

    List values are given as JSON arrays, e.g.
    COREASON_OIDC_SCOPES_SUPPORTED='["openid", "profile"]'.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_OIDC_",
        case_sensitive=False,
    )

    issuer: str = ""
    authorization_endpoint: str = ""
    token_endpoint: str = ""
    userinfo_endpoint: str = ""
    jwks_uri: str = ""
    response_types_supported: list[str] = Field(default_factory=list)
    subject_types_supported: list[str] = Field(default_factory=list)
    id_token_signing_alg_values_supported: list[str] = Field(default_factory=list)
    scopes_supported: list[str] = Field(default_factory=list)
    claims_supported: list[str] | None = None
    token_endpoint_auth_methods_supported: list[str] | None = None
    grant_types_supported: list[str] | None = None
    code_challenge_methods_supported: list[str] | None = None

    @field_validator("issuer", "authorization_endpoint", "token_endpoint", "userinfo_endpoint", "jwks_uri")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()
