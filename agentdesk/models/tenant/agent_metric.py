"""
Agent Metric Model
Daily rollup of an agent's performance
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, UniqueConstraint

from agentdesk.models.tenant.base import TenantBase


class AgentMetric(TenantBase):
    __tablename__ = "agent_metrics"

    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    total_conversations = Column(Integer, nullable=False, default=0, server_default="0")
    total_messages = Column(Integer, nullable=False, default=0, server_default="0")
    avg_response_time = Column(Numeric(10, 2), nullable=False, default=0, server_default="0")
    satisfaction_rating = Column(Numeric(3, 2), nullable=False, default=0, server_default="0")
    resolution_rate = Column(Numeric(5, 2), nullable=False, default=0, server_default="0")
    escalation_rate = Column(Numeric(5, 2), nullable=False, default=0, server_default="0")
    active_conversations = Column(Integer, nullable=False, default=0, server_default="0")
    sla_compliance = Column(Numeric(5, 2), nullable=False, default=0, server_default="0")
    cost_per_message = Column(Numeric(10, 4), nullable=False, default=0, server_default="0")
    revenue_generated = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")

    __table_args__ = (
        UniqueConstraint("agent_id", "date", name="uq_agent_metrics_agent_date"),
    )
