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
Request-scoped authenticated user, set by the login/session layer.
"""

from contextvars import ContextVar, Token

_current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)


def get_current_user() -> str | None:
    """
    Retrieve the authenticated user's subject identifier for the current task.

    Returns:
        str | None: The user ID, or None if no user is authenticated.
    """
    return _current_user_id.get()


def set_current_user(user_id: str) -> Token[str | None]:
    """
    Set the authenticated user for the current task.

    Args:
        user_id: The subject identifier of the authenticated user.

    Returns:
        A token that can be passed to `reset_current_user` to restore the previous value.
    """
    return _current_user_id.set(user_id)


def reset_current_user(token: Token[str | None]) -> None:
    _current_user_id.reset(token)


def clear_current_user() -> None:
    """
    Clear the current user (reset to None).
    """
    _current_user_id.set(None)
