"""
Audit Log Model
Records administrative and provisioning actions
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, func

from agentdesk.models.registry.base import RegistryBase


class AuditLog(RegistryBase):
    """Audit trail entry"""

    __tablename__ = "audit_logs"

    user_id = Column(Integer, nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    resource_type = Column(String(100), nullable=True, index=True)
    resource_id = Column(String(64), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    timestamp = Column(
        DateTime,
        default=datetime.utcnow,
        server_default=func.now(),
        nullable=False,
        index=True
    )
