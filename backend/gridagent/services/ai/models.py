"""AI service response models."""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List


@dataclass
class ToolCall:
    """Tool call requested by the model."""
    name: str
    arguments: str  # JSON string
    id: Optional[str] = None


@dataclass
class ChatResponse:
    """Chat completion response model."""
    content: Optional[str]
    model: str
    tokens_used: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    finish_reason: str = "stop"
    tool_calls: List[ToolCall] = field(default_factory=list)
    raw_message: Optional[Dict[str, Any]] = None

    @property
    def tool_call(self) -> Optional[ToolCall]:
        """First requested tool call, if any."""
        return self.tool_calls[0] if self.tool_calls else None
