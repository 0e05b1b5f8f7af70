"""Ticket Engine - Authorization, lifecycle and audit"""
from .lifecycle import TicketLifecycle, TransitionDecision, TRANSITION_TABLE
from .permission_guard import PermissionGuard, POLICY
from .comment_filter import filter_comments
from .audit_writer import AuditWriter

__all__ = [
    "TicketLifecycle",
    "TransitionDecision",
    "TRANSITION_TABLE",
    "PermissionGuard",
    "POLICY",
    "filter_comments",
    "AuditWriter",
]
