# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_authz

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import anyio
import pytest

from coreason_authz.async_context import set_current_user
from coreason_authz.authorization import AuthorizationService
from coreason_authz.clients import InMemoryClientDirectory
from coreason_authz.code_issuer import AuthorizationCodeIssuer
from coreason_authz.code_repository import InMemoryAuthorizationCodeRepository
from coreason_authz.exceptions import (
    ClientError,
    LoginRequiredError,
    NonceError,
    RedirectUriError,
    ScopeError,
    UnsupportedOperationError,
)
from coreason_authz.flow import OIDCFlow
from coreason_authz.models import AuthorizationRequest, TokenSet
from coreason_authz.provider_config import ProviderConfiguration


@pytest.fixture
def token_issuer() -> MagicMock:
    issuer = MagicMock()

    async def issue_tokens(**kwargs: Any) -> TokenSet:
        return TokenSet(
            access_token="at-123" if kwargs["include_access_token"] else None,
            token_type="Bearer" if kwargs["include_access_token"] else None,
            expires_in=3600 if kwargs["include_access_token"] else None,
            id_token="eyJ.id.token" if kwargs["include_id_token"] else None,
        )

    issuer.issue_tokens = AsyncMock(side_effect=issue_tokens)
    return issuer


@pytest.fixture
def service(
    client_directory: InMemoryClientDirectory,
    provider: ProviderConfiguration,
    code_issuer: AuthorizationCodeIssuer,
    token_issuer: MagicMock,
) -> AuthorizationService:
    return AuthorizationService(client_directory, provider, code_issuer, token_issuer)


def hybrid_request(**overrides: Any) -> AuthorizationRequest:
    params: dict[str, Any] = {
        "client_id": "2",
        "redirect_uri": "https://rp.example.org/cb",
        "scope": "openid profile",
        "response_type": "code id_token token",
        "nonce": "n-0S6_WzA2Mj",
        "state": "af0ifjsldkj",
    }
    params.update(overrides)
    return AuthorizationRequest(**params)


@pytest.mark.asyncio
async def test_authorization_code_flow(
    service: AuthorizationService,
    code_request: AuthorizationRequest,
    code_repository: InMemoryAuthorizationCodeRepository,
    token_issuer: MagicMock,
) -> None:
    request = code_request.model_copy(update={"state": "state-001"})
    result = await service.process_authorization_request(request, user_id="user_1")

    assert result.flow is OIDCFlow.AUTHORIZATION_CODE
    assert result.response.code is not None
    assert result.response.state == "state-001"
    assert result.response.to_params() == {"code": result.response.code, "state": "state-001"}

    auth_code = result.authorization_code
    assert auth_code is not None
    assert auth_code.used is False
    assert auth_code.user_id == "user_1"
    assert auth_code.ttl_seconds == 600
    assert await code_repository.find_by_code(auth_code.code) == auth_code
    token_issuer.issue_tokens.assert_not_awaited()


@pytest.mark.asyncio
async def test_authorization_code_flow_without_state(
    service: AuthorizationService, code_request: AuthorizationRequest
) -> None:
    result = await service.process_authorization_request(code_request, user_id="user_1")
    assert "state" not in result.response.to_params()


@pytest.mark.asyncio
async def test_user_from_async_context(service: AuthorizationService, code_request: AuthorizationRequest) -> None:
    set_current_user("ctx-user")
    result = await service.process_authorization_request(code_request)

    assert result.authorization_code is not None
    assert result.authorization_code.user_id == "ctx-user"


@pytest.mark.asyncio
async def test_login_required(
    service: AuthorizationService,
    code_request: AuthorizationRequest,
    code_repository: InMemoryAuthorizationCodeRepository,
) -> None:
    with pytest.raises(LoginRequiredError) as exc_info:
        await service.process_authorization_request(code_request)

    assert exc_info.value.error_code == "login_required"
    assert len(code_repository) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("challenge", "method"),
    [
        ("E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM", "S256"),
        ("abc", None),
        ("abc", "plain"),
    ],
)
async def test_pkce_parameters_carried_through(
    service: AuthorizationService,
    code_request: AuthorizationRequest,
    code_repository: InMemoryAuthorizationCodeRepository,
    challenge: str,
    method: str | None,
) -> None:
    request = code_request.model_copy(update={"code_challenge": challenge, "code_challenge_method": method})
    result = await service.process_authorization_request(request, user_id="user_1")

    auth_code = result.authorization_code
    assert auth_code is not None
    assert auth_code.code_challenge == challenge
    assert auth_code.code_challenge_method == method

    stored = await code_repository.find_by_code(auth_code.code)
    assert stored is not None
    assert stored.code_challenge_method == method


@pytest.mark.asyncio
async def test_implicit_flow(
    service: AuthorizationService,
    token_issuer: MagicMock,
    code_repository: InMemoryAuthorizationCodeRepository,
) -> None:
    request = hybrid_request(response_type="id_token token")
    result = await service.process_authorization_request(request, user_id="user_1")

    assert result.flow is OIDCFlow.IMPLICIT
    assert result.authorization_code is None
    assert result.response.to_params() == {
        "access_token": "at-123",
        "token_type": "Bearer",
        "expires_in": 3600,
        "id_token": "eyJ.id.token",
        "state": "af0ifjsldkj",
    }
    assert len(code_repository) == 0

    kwargs = token_issuer.issue_tokens.await_args.kwargs
    assert kwargs["flow"] is OIDCFlow.IMPLICIT
    assert kwargs["include_access_token"] is True
    assert kwargs["include_id_token"] is True
    assert kwargs["user_id"] == "user_1"


@pytest.mark.asyncio
async def test_implicit_flow_id_token_only(service: AuthorizationService) -> None:
    result = await service.process_authorization_request(hybrid_request(response_type="id_token"), user_id="u")

    assert result.response.id_token == "eyJ.id.token"
    assert result.response.access_token is None


@pytest.mark.asyncio
async def test_hybrid_flow(
    service: AuthorizationService,
    token_issuer: MagicMock,
    code_repository: InMemoryAuthorizationCodeRepository,
) -> None:
    result = await service.process_authorization_request(hybrid_request(), user_id="user_1")

    assert result.flow is OIDCFlow.HYBRID
    assert result.authorization_code is not None
    assert result.response.code == result.authorization_code.code
    assert result.response.access_token == "at-123"
    assert result.response.id_token == "eyJ.id.token"
    assert result.response.state == "af0ifjsldkj"
    assert result.authorization_code.nonce == "n-0S6_WzA2Mj"
    assert len(code_repository) == 1

    kwargs = token_issuer.issue_tokens.await_args.kwargs
    assert kwargs["code"] == result.authorization_code.code
    assert kwargs["flow"] is OIDCFlow.HYBRID


@pytest.mark.asyncio
async def test_hybrid_flow_code_id_token(service: AuthorizationService, token_issuer: MagicMock) -> None:
    result = await service.process_authorization_request(
        hybrid_request(response_type="id_token code"), user_id="user_1"
    )

    assert result.flow is OIDCFlow.HYBRID
    assert result.response.access_token is None
    assert result.response.id_token == "eyJ.id.token"
    kwargs = token_issuer.issue_tokens.await_args.kwargs
    assert kwargs["include_access_token"] is False
    assert kwargs["include_id_token"] is True


@pytest.mark.asyncio
async def test_token_flows_require_token_issuer(
    client_directory: InMemoryClientDirectory,
    provider: ProviderConfiguration,
    code_issuer: AuthorizationCodeIssuer,
    code_repository: InMemoryAuthorizationCodeRepository,
) -> None:
    service = AuthorizationService(client_directory, provider, code_issuer)

    with pytest.raises(UnsupportedOperationError):
        await service.process_authorization_request(hybrid_request(), user_id="user_1")
    with pytest.raises(UnsupportedOperationError):
        await service.process_authorization_request(hybrid_request(response_type="id_token"), user_id="user_1")

    # No orphan code is left behind
    assert len(code_repository) == 0


@pytest.mark.asyncio
async def test_hybrid_token_failure_stores_no_code(
    service: AuthorizationService,
    token_issuer: MagicMock,
    code_repository: InMemoryAuthorizationCodeRepository,
) -> None:
    token_issuer.issue_tokens = AsyncMock(side_effect=RuntimeError("signer down"))

    with pytest.raises(RuntimeError, match="signer down"):
        await service.process_authorization_request(hybrid_request(response_type="code id_token"), user_id="user_1")

    assert token_issuer.issue_tokens.await_count == 1
    assert len(code_repository) == 0


@pytest.mark.asyncio
async def test_hybrid_collision_reissues_tokens_for_stored_code(
    client_directory: InMemoryClientDirectory,
    provider: ProviderConfiguration,
    code_repository: InMemoryAuthorizationCodeRepository,
    token_issuer: MagicMock,
) -> None:
    values = iter(["taken", "taken", "fresh"])
    code_issuer = AuthorizationCodeIssuer(code_repository, generator=lambda: next(values))
    service = AuthorizationService(client_directory, provider, code_issuer, token_issuer)
    await service.process_authorization_request(
        AuthorizationRequest(
            client_id="1", redirect_uri="https://example.com/callback", scope="openid", response_type="code"
        ),
        user_id="user_1",
    )

    result = await service.process_authorization_request(hybrid_request(), user_id="user_1")

    assert result.response.code == "fresh"
    codes = [call.kwargs["code"] for call in token_issuer.issue_tokens.await_args_list]
    assert codes == ["taken", "fresh"]
    assert len(code_repository) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "error"),
    [
        ({"client_id": "missing"}, ClientError),
        ({"redirect_uri": "https://evil.test/callback"}, RedirectUriError),
        ({"scope": "profile"}, ScopeError),
        ({"nonce": None}, NonceError),
    ],
)
async def test_validation_failure_issues_nothing(
    service: AuthorizationService,
    token_issuer: MagicMock,
    code_repository: InMemoryAuthorizationCodeRepository,
    overrides: dict[str, Any],
    error: type[Exception],
) -> None:
    with pytest.raises(error):
        await service.process_authorization_request(hybrid_request(**overrides), user_id="user_1")

    assert len(code_repository) == 0
    token_issuer.issue_tokens.assert_not_awaited()


@pytest.mark.asyncio
async def test_validate_authorization_request(service: AuthorizationService) -> None:
    client = await service.validate_authorization_request(hybrid_request())
    assert client.client_id == "2"

    with pytest.raises(ClientError):
        await service.validate_authorization_request(hybrid_request(client_id="3"))


@pytest.mark.asyncio
async def test_error_response(service: AuthorizationService) -> None:
    request = hybrid_request(scope="openid email address")
    with pytest.raises(ScopeError) as exc_info:
        await service.process_authorization_request(request, user_id="user_1")

    response = service.error_response(exc_info.value, state=request.state)
    assert response.to_params() == {
        "error": "invalid_scope",
        "error_description": "Scope not supported: address",
        "state": "af0ifjsldkj",
    }


@pytest.mark.asyncio
async def test_concurrent_requests_resolve_independently(service: AuthorizationService) -> None:
    """The resolved flow is returned per request, not kept on the service."""
    results: dict[str, OIDCFlow] = {}

    async def run(name: str, request: AuthorizationRequest) -> None:
        result = await service.process_authorization_request(request, user_id=name)
        results[name] = result.flow

    async with anyio.create_task_group() as tg:
        tg.start_soon(run, "code", hybrid_request(response_type="code id_token", client_id="2"))
        tg.start_soon(run, "implicit", hybrid_request(response_type="id_token"))
        tg.start_soon(
            run,
            "plain",
            AuthorizationRequest(
                client_id="1", redirect_uri="https://example.com/callback", scope="openid", response_type="code"
            ),
        )

    assert results == {"code": OIDCFlow.HYBRID, "implicit": OIDCFlow.IMPLICIT, "plain": OIDCFlow.AUTHORIZATION_CODE}
