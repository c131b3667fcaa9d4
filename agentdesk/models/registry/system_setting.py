"""
System Setting Model
Key/value platform configuration editable from the admin dashboard
"""

from sqlalchemy import JSON, Column, String, Text

from agentdesk.models.registry.base import RegistryBase


class SystemSetting(RegistryBase):
    __tablename__ = "system_settings"

    key = Column(String(100), nullable=False, unique=True)
    value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
