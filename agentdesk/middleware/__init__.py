"""
Middleware Module
"""

from agentdesk.middleware.audit_logger import AuditLogger

__all__ = ["AuditLogger"]
