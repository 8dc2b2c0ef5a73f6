from .agent import AgentBacklog, GenerationError
from .llm_client import LLMClient, ChatMessage
from .schemas import BacklogGraph, Epic, Feature, UserStory

__all__ = [
    "AgentBacklog",
    "GenerationError",
    "LLMClient",
    "ChatMessage",
    "BacklogGraph",
    "Epic",
    "Feature",
    "UserStory",
]
