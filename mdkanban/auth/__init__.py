"""Caller identity and authorization."""

from .authz import Authorizer
from .identity import AuthContext, Caller, resolve_caller_id

__all__ = ["AuthContext", "Authorizer", "Caller", "resolve_caller_id"]
