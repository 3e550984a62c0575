# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_authz

import re
from urllib.parse import urlparse

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*$")


def is_valid_url(value: str | None) -> bool:
    """
    Returns True if value is a well-formed absolute URL.

    http(s) URLs need a host. Other schemes (e.g. native app callbacks such as
    "com.example.app:/callback") need a non-empty remainder.
    """
    if not value or value != value.strip() or any(ch.isspace() for ch in value):
        return False

    try:
        parsed = urlparse(value)
    except ValueError:
        return False

    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme):
        return False

    if parsed.scheme.lower() in ("http", "https"):
        try:
            # Accessing port validates it is numeric and in range
            _ = parsed.port
        except ValueError:
            return False
        return bool(parsed.hostname)

    return bool(parsed.netloc or parsed.path)
