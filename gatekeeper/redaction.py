# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Masking of personal data in log records.

Installed as a loguru patcher by main.setup_logging(), so every record is
redacted before any sink sees it:

    logger.configure(patcher=redact_record)

Patterns run most specific first: a UUID or card number must be replaced
before the looser phone pattern can claim part of it.
"""

import re
from typing import Any, Dict, List, Tuple

_PATTERNS: List[Tuple["re.Pattern[str]", str]] = [
    (
        re.compile(r"(Bearer\s+)[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+"),
        r"\1[TOKEN_REDACTED]",
    ),
    (re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"), "[EMAIL_REDACTED]"),
    (
        re.compile(
            r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
        ),
        "[USER_ID_REDACTED]",
    ),
    (re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b"), "[CREDIT_CARD_REDACTED]"),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[SSN_REDACTED]"),
    (re.compile(r"(?:\+\d{1,3}[-\s]?)?\(?\d{3}\)?[-\s]?\d{3}[-\s]?\d{4}\b"), "[PHONE_REDACTED]"),
]


def mask_sensitive_data(value: Any) -> Any:
    """
    Mask personal data in a string, or in the strings inside a dict/list.

    Other values are returned unchanged. Containers are copied, never
    modified in place.

    Example:
        >>> mask_sensitive_data("login failed for a@b.com")
        'login failed for [EMAIL_REDACTED]'
    """
    if isinstance(value, str):
        for pattern, replacement in _PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return {key: mask_sensitive_data(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(mask_sensitive_data(item) for item in value)
    return value


def redact_record(record: Dict[str, Any]) -> None:
    """Loguru patcher: masks the formatted message and string extras."""
    record["message"] = mask_sensitive_data(record["message"])
    extra = record.get("extra")
    if extra:
        for key, item in list(extra.items()):
            if isinstance(item, (str, dict, list)):
                extra[key] = mask_sensitive_data(item)
