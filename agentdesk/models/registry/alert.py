"""
Alert Model
System alerts shown on the admin dashboard
"""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Enum as SAEnum, false

from agentdesk.models.registry.base import RegistryBase


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Alert(RegistryBase):
    """System alert"""

    __tablename__ = "alerts"

    type = Column(String(100), nullable=False)
    severity = Column(
        SAEnum(*[s.value for s in AlertSeverity], name="alert_severity"),
        nullable=False,
        default=AlertSeverity.MEDIUM.value,
        server_default=AlertSeverity.MEDIUM.value,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    resolved = Column(Boolean, nullable=False, default=False, server_default=false(), index=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(Integer, nullable=True)
