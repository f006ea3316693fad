# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Structural limits applied to a fragment before its schema runs.

Bounds the worst-case cost of validation for adversarial payloads:

1) Nesting depth: a value N levels below the fragment root has depth N.
   Any value deeper than ``max_depth`` rejects the fragment.
2) Size: strings longer than ``max_string_length``, lists longer than
   ``max_array_length`` and mappings with more than ``max_array_length``
   keys reject the fragment.

Both walks are iterative and stop at the first offending value, so a hostile
payload can neither exhaust the interpreter stack nor force a full traversal.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from gatekeeper.config import (
    VALIDATION_MAX_ARRAY_LENGTH,
    VALIDATION_MAX_DEPTH,
    VALIDATION_MAX_STRING_LENGTH,
)


@dataclass(frozen=True)
class PayloadLimits:
    """Limits for one fragment."""

    max_depth: int = VALIDATION_MAX_DEPTH
    max_array_length: int = VALIDATION_MAX_ARRAY_LENGTH
    max_string_length: int = VALIDATION_MAX_STRING_LENGTH


def _children(value: Any) -> List[Any]:
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def check_nesting_depth(data: Any, max_depth: int) -> bool:
    """
    Check that no value is nested deeper than ``max_depth``.

    Args:
        data: Fragment (any JSON-like value)
        max_depth: Maximum allowed depth (root is 0)

    Returns:
        True if the depth is within limits
    """
    stack: List[Tuple[Any, int]] = [(data, 0)]
    while stack:
        value, depth = stack.pop()
        if depth > max_depth:
            return False
        for child in _children(value):
            stack.append((child, depth + 1))
    return True


def find_size_violation(
    data: Any,
    max_array_length: int,
    max_string_length: int,
) -> Optional[str]:
    """
    Find the first value exceeding the size limits.

    Returns:
        Short description of the offending value, or None if within limits
    """
    stack: List[Any] = [data]
    while stack:
        value = stack.pop()
        if isinstance(value, str):
            if len(value) > max_string_length:
                return f"string of length {len(value)}"
        elif isinstance(value, dict):
            if len(value) > max_array_length:
                return f"object with {len(value)} keys"
            stack.extend(value.values())
        elif isinstance(value, (list, tuple)):
            if len(value) > max_array_length:
                return f"array of length {len(value)}"
            stack.extend(value)
    return None


def check_payload_size(data: Any, max_array_length: int, max_string_length: int) -> bool:
    """
    Check string, list and mapping sizes against limits.

    Returns:
        True if every value is within limits
    """
    return find_size_violation(data, max_array_length, max_string_length) is None
