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
Helpers for comparing space-delimited OAuth parameter values as token sets.
"""


def split_tokens(value: str) -> list[str]:
    """
    Splits a space-delimited parameter into lower-cased tokens.

    Order is preserved and duplicates are kept.

    Args:
        value: The raw parameter value (e.g. "openid Profile  email").

    Returns:
        The list of lower-cased tokens. Empty for blank input.
    """
    return [token.lower() for token in value.split()]


def normalize_response_type(value: str) -> str:
    """
    Canonicalizes a response_type so that "code id_token" and "ID_TOKEN code" compare equal.

    Args:
        value: The raw response_type value.

    Returns:
        The sorted, lower-cased tokens joined by a single space, or "" for blank input.
    """
    return " ".join(sorted(split_tokens(value)))
