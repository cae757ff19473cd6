"""Agent module for the support agent roster."""

from app.modules.agent.models import Agent
from app.modules.agent.repository import AgentRepository

__all__ = [
    "Agent",
    "AgentRepository",
]
