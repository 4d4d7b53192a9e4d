"""Tool catalog endpoint."""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from gridagent.api.dependencies import get_tool_registry
from gridagent.services.tools.registry import ToolRegistry

router = APIRouter(prefix="/tools", tags=["tools"])


@router.get("")
async def list_tools(registry: ToolRegistry = Depends(get_tool_registry)) -> List[Dict[str, Any]]:
    """Tool definitions exactly as they are advertised to the model."""
    return registry.catalog()
