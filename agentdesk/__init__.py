"""
AgentDesk
Multi-tenant AI support agent backend with one isolated database per client
"""

__version__ = "1.0.0"
