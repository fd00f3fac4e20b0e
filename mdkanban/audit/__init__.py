"""Audit logging for accepted mutations."""

from .log import AuditEntry, AuditSink, JsonlAuditLog, read_audit_log, record_audit

__all__ = ["AuditEntry", "AuditSink", "JsonlAuditLog", "read_audit_log", "record_audit"]
