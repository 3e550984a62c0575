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
Resolution of the OpenID Connect flow from a response_type value.
"""

from coreason_authz.models import OIDCFlow
from coreason_authz.normalizer import normalize_response_type

__all__ = ["OIDCFlow", "requested_tokens", "resolve_flow"]


def requested_tokens(response_type: str) -> frozenset[str]:
    """Returns the normalized set of response_type tokens."""
    return frozenset(normalize_response_type(response_type).split())


def resolve_flow(response_type: str) -> OIDCFlow:
    """
    Classifies a response_type into a flow.

    - "code" combined with "token" and/or "id_token" is the hybrid flow.
    - "code" alone is the authorization code flow.
    - Anything else resolves to the implicit flow.

    The last branch is a permissive fallback: unrecognized values resolve to implicit.
    Callers must check response_type support separately before issuing anything.

    Args:
        response_type: The raw response_type value. Token order and case are ignored.

    Returns:
        OIDCFlow: The resolved flow.
    """
    tokens = requested_tokens(response_type)

    has_code = "code" in tokens
    has_token = "token" in tokens
    has_id_token = "id_token" in tokens

    if has_code and (has_token or has_id_token):
        return OIDCFlow.HYBRID

    if has_code:
        return OIDCFlow.AUTHORIZATION_CODE

    return OIDCFlow.IMPLICIT
