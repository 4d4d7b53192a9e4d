"""AI service modules."""
from gridagent.services.ai.client import ModelClient, AIClientError, AIGatewayError, AINetworkError
from gridagent.services.ai.models import ChatResponse, ToolCall

__all__ = [
    "ModelClient",
    "AIClientError",
    "AIGatewayError",
    "AINetworkError",
    "ChatResponse",
    "ToolCall",
]
