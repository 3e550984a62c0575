# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_authz

from collections.abc import Generator
from typing import Any

import pytest

from coreason_authz.async_context import clear_current_user
from coreason_authz.clients import InMemoryClientDirectory
from coreason_authz.code_issuer import AuthorizationCodeIssuer
from coreason_authz.code_repository import InMemoryAuthorizationCodeRepository
from coreason_authz.config import CoreasonAuthzConfig
from coreason_authz.models import AuthorizationRequest, Client
from coreason_authz.provider_config import ProviderConfiguration


@pytest.fixture
def base_metadata() -> dict[str, Any]:
    return {
        "issuer": "https://example.com",
        "authorization_endpoint": "https://example.com/auth",
        "token_endpoint": "https://example.com/token",
        "userinfo_endpoint": "https://example.com/userinfo",
        "jwks_uri": "https://example.com/jwks",
        "response_types_supported": ["code", "id_token", "id_token token", "code id_token", "code id_token token"],
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": ["RS256"],
        "scopes_supported": ["openid", "profile", "email"],
        "code_challenge_methods_supported": ["S256"],
    }


@pytest.fixture
def provider(base_metadata: dict[str, Any]) -> ProviderConfiguration:
    return ProviderConfiguration(base_metadata)


@pytest.fixture
def clients() -> list[Client]:
    return [
        Client(
            client_id="1",
            redirect_uris=("https://example.com/callback",),
            response_types=("code",),
        ),
        Client(
            client_id="2",
            redirect_uris=("https://rp.example.org/cb", "com.example.app:/oauth2redirect"),
            response_types=("code id_token token", "id_token", "id_token token", "code id_token"),
            grant_types=("authorization_code", "implicit"),
        ),
        Client(
            client_id="3",
            redirect_uris=("https://disabled.example.net/cb",),
            response_types=("code",),
            active=False,
        ),
    ]


@pytest.fixture
def client_directory(clients: list[Client]) -> InMemoryClientDirectory:
    return InMemoryClientDirectory(clients)


@pytest.fixture
def authz_config() -> CoreasonAuthzConfig:
    return CoreasonAuthzConfig(auth_code_ttl=600, code_save_attempts=3)


@pytest.fixture
def code_repository() -> InMemoryAuthorizationCodeRepository:
    return InMemoryAuthorizationCodeRepository()


@pytest.fixture
def code_issuer(
    code_repository: InMemoryAuthorizationCodeRepository, authz_config: CoreasonAuthzConfig
) -> AuthorizationCodeIssuer:
    return AuthorizationCodeIssuer(code_repository, config=authz_config)


@pytest.fixture
def code_request() -> AuthorizationRequest:
    return AuthorizationRequest(
        client_id="1",
        redirect_uri="https://example.com/callback",
        scope="openid",
        response_type="code",
    )


@pytest.fixture(autouse=True)
def reset_current_user() -> Generator[None, None, None]:
    clear_current_user()
    yield
    clear_current_user()
