"""Caller identity.

A caller is whoever asks for a mutation: a human using a tool or an agent
process. Identity comes from the request context first and the
``MDKANBAN_CALLER_ID`` environment variable second.
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional

from ..config.constants import ENV_CALLER_ID


@dataclass(frozen=True)
class Caller:
    """An identified caller."""

    id: str


@dataclass(frozen=True)
class AuthContext:
    """Per-request identity context passed into every operation."""

    caller_id: Optional[str] = None
    caller: Optional[Caller] = None


CallerResolver = Callable[[AuthContext], Optional[str]]


def resolve_caller_id(ctx: Optional[AuthContext]) -> Optional[str]:
    """Resolve a caller id.

    Priority: ``ctx.caller.id`` > ``ctx.caller_id`` > ``MDKANBAN_CALLER_ID``.
    Returns None when nobody is identified.
    """
    if ctx is not None:
        if ctx.caller is not None and ctx.caller.id:
            return ctx.caller.id
        if ctx.caller_id:
            return ctx.caller_id

    value = os.environ.get(ENV_CALLER_ID, "").strip()
    return value or None
