"""Non-GitHub tools: Bing web search and image analysis."""
import functools
import logging
from typing import Any, Dict, List

import httpx

from gridagent.core.config import settings
from gridagent.services.ai.client import AIClientError, ModelClient
from gridagent.services.tools.registry import Tool, ToolInvocationError

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10


async def search_with_bing(http: httpx.AsyncClient, api_key: str, endpoint: str, query: str) -> List[Dict[str, Any]]:
    if not api_key:
        raise ToolInvocationError("Bing search is not configured")
    try:
        response = await http.get(
            endpoint,
            params={"q": query, "count": MAX_SEARCH_RESULTS},
            headers={"Ocp-Apim-Subscription-Key": api_key},
        )
    except httpx.RequestError as e:
        raise ToolInvocationError(f"Bing search failed: {e}") from e
    if response.status_code >= 400:
        raise ToolInvocationError(f"Bing search error {response.status_code}: {response.text[:200]}")
    pages = (response.json().get("webPages") or {}).get("value", [])
    return [
        {
            "type": "item",
            "title": page.get("name"),
            "url": page.get("url"),
            "snippet": page.get("snippet"),
            "value": page.get("name"),
        }
        for page in pages
    ]


async def analyze_image(model_client: ModelClient, imageUrl: str, question: str = "Describe this image.") -> str:
    messages = [{
        "role": "user",
        "content": [
            {"type": "text", "text": question},
            {"type": "image_url", "image_url": {"url": imageUrl}},
        ],
    }]
    try:
        response = await model_client.chat(messages=messages)
    except AIClientError as e:
        raise ToolInvocationError(f"Image analysis failed: {e}") from e
    return response.content or ""


def build_web_tools(http: httpx.AsyncClient, model_client: ModelClient) -> List[Tool]:
    tools = [
        Tool(
            name="analyzeImage",
            description="Analyzes an image at a URL and answers a question about it.",
            parameters={
                "type": "object",
                "properties": {
                    "imageUrl": {"type": "string", "description": "Public URL of the image."},
                    "question": {"type": "string", "description": "What to find out about the image."},
                },
                "required": ["imageUrl"],
            },
            run=functools.partial(analyze_image, model_client),
        ),
    ]
    # Only advertised when a key is configured
    if settings.BING_API_KEY:
        tools.append(Tool(
            name="searchWithBing",
            description="Searches the web with Bing. Use this for information that is not on GitHub.",
            parameters={
                "type": "object",
                "properties": {"query": {"type": "string", "description": "The search query."}},
                "required": ["query"],
            },
            run=functools.partial(search_with_bing, http, settings.BING_API_KEY, settings.BING_ENDPOINT),
        ))
    return tools
