"""Model client for OpenAI-compatible chat completion endpoints."""
import asyncio
import json
import logging
from typing import List, Dict, Any, Optional, Union

import httpx

from gridagent.core.config import ModelConfig, settings
from gridagent.services.ai.models import ChatResponse, ToolCall

logger = logging.getLogger(__name__)

# Retry configuration
INITIAL_RETRY_DELAY = 1  # seconds
MAX_RETRY_DELAY = 10  # seconds


class AIClientError(Exception):
    """Base exception for AI client errors."""
    pass


class AIGatewayError(AIClientError):
    """Exception for endpoint errors."""
    pass


class AINetworkError(AIClientError):
    """Exception for network errors."""
    pass


class ModelClient:
    """Chat completion client bound to one explicit model configuration."""

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None
    ):
        """Initialize model client.

        Args:
            config: Endpoint, credential and model id (defaults to ModelConfig.from_settings())
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request (1 disables retries)
        """
        self.config = config or ModelConfig.from_settings()
        self.endpoint = self.config.endpoint.rstrip('/')
        self.timeout = timeout or settings.MODEL_TIMEOUT
        self.max_retries = max(1, max_retries or settings.MODEL_MAX_RETRIES)

        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True
        )

    @property
    def model(self) -> str:
        return self.config.model

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """Make HTTP request, retrying 5xx and network failures up to max_retries attempts.

        Raises:
            AIGatewayError: For endpoint errors
            AINetworkError: For network errors
        """
        headers = headers or {}

        for attempt in range(self.max_retries):
            try:
                response = await self._client.request(
                    method=method,
                    url=url,
                    json=json_data,
                    headers=headers
                )

                if response.status_code >= 400:
                    error_msg = f"Model endpoint error: {response.status_code}"
                    try:
                        error_data = response.json()
                        if "error" in error_data:
                            error = error_data.get("error")
                            if isinstance(error, dict):
                                error_msg = error.get("message", error_msg)
                            else:
                                error_msg = str(error)
                        elif "detail" in error_data:
                            error_msg = error_data["detail"]
                        else:
                            error_msg = f"{error_msg} - {response.text[:200]}"
                    except (ValueError, KeyError, TypeError, AttributeError) as e:
                        logger.debug(f"Could not parse error response JSON: {e}")
                        error_msg = f"{error_msg} - {response.text[:200]}"

                    # Don't retry on 4xx errors (client errors)
                    if 400 <= response.status_code < 500:
                        raise AIGatewayError(error_msg)

                    if attempt == self.max_retries - 1:
                        raise AIGatewayError(f"{error_msg} (after {self.max_retries} attempts)")

                    delay = min(INITIAL_RETRY_DELAY * (2 ** attempt), MAX_RETRY_DELAY)
                    logger.warning(f"Model endpoint error {response.status_code}, retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})")
                    await asyncio.sleep(delay)
                    continue

                return response

            except httpx.TimeoutException as e:
                if attempt == self.max_retries - 1:
                    raise AINetworkError(f"Request timeout after {self.max_retries} attempts") from e
                delay = min(INITIAL_RETRY_DELAY * (2 ** attempt), MAX_RETRY_DELAY)
                logger.warning(f"Request timeout, retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})")
                await asyncio.sleep(delay)

            except httpx.RequestError as e:
                if attempt == self.max_retries - 1:
                    raise AINetworkError(f"Network error after {self.max_retries} attempts: {e}") from e
                delay = min(INITIAL_RETRY_DELAY * (2 ** attempt), MAX_RETRY_DELAY)
                logger.warning(f"Network error, retrying in {delay}s (attempt {attempt + 1}/{self.max_retries}): {e}")
                await asyncio.sleep(delay)

        raise AINetworkError("Failed to complete request after retries")

    def _parse_chat_response(self, response_data: Dict[str, Any]) -> ChatResponse:
        """Parse a chat completion payload into ChatResponse."""
        choices = response_data.get("choices", [])
        if not choices:
            err_detail = ""
            if "error" in response_data:
                err = response_data.get("error", {})
                err_detail = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            logger.warning(
                "No choices in model response: %s",
                json.dumps({k: v for k, v in response_data.items() if k != "usage"})[:500]
            )
            raise AIGatewayError(
                err_detail or "No choices in response (provider may have filtered or timed out)"
            )

        choice = choices[0]
        message = choice.get("message", {}) or {}
        content = message.get("content")

        tool_calls = []
        for tc in message.get("tool_calls") or []:
            function_data = tc.get("function", {})
            tool_calls.append(ToolCall(
                name=function_data.get("name", ""),
                arguments=function_data.get("arguments") or "{}",
                id=tc.get("id")
            ))
        if not tool_calls and message.get("function_call"):
            # Legacy function_call format
            fc_data = message["function_call"]
            tool_calls.append(ToolCall(
                name=fc_data.get("name", ""),
                arguments=fc_data.get("arguments") or "{}"
            ))

        usage = response_data.get("usage", {}) or {}

        return ChatResponse(
            content=content,
            model=response_data.get("model", ""),
            tokens_used=usage.get("total_tokens", 0),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            finish_reason=choice.get("finish_reason") or "stop",
            tool_calls=tool_calls,
            raw_message=message
        )

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Union[str, Dict[str, Any]]] = None,
        response_format: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> ChatResponse:
        """
        Send a chat completion request.

        Args:
            messages: Message dicts with "role" and "content"
            tools: Tool definitions in OpenAI "tools" format
            tool_choice: "auto", "none", "required" or a specific tool
            response_format: Structured output constraint ({"type": "json_schema", ...})
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens to generate
            **kwargs: Additional parameters passed through to the endpoint

        Raises:
            AIGatewayError: For endpoint errors
            AINetworkError: For network errors
        """
        payload: Dict[str, Any] = {
            "model": kwargs.pop("model", None) or self.model,
            "messages": messages,
            "stream": False,
        }

        if tools:
            payload["tools"] = tools
            if tool_choice is not None:
                payload["tool_choice"] = tool_choice
        if response_format is not None:
            payload["response_format"] = response_format
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        payload.update(kwargs)

        url = f"{self.endpoint}/chat/completions"

        logger.debug(f"Sending chat request: model={payload['model']}, messages={len(messages)}, tools={len(tools or [])}")

        try:
            response = await self._request_with_retry(
                method="POST",
                url=url,
                json_data=payload,
                headers=self._get_headers()
            )

            chat_response = self._parse_chat_response(response.json())

            logger.info(
                f"Chat completion successful: model={payload['model']}, tokens={chat_response.tokens_used}, "
                f"content_len={len(chat_response.content or '')}, tool_calls={len(chat_response.tool_calls)}, "
                f"finish_reason={chat_response.finish_reason}"
            )
            return chat_response

        except (AIGatewayError, AINetworkError):
            raise
        except Exception as e:
            raise AIClientError(f"Unexpected error in chat completion: {e}") from e

    async def complete(
        self,
        system_prompt: str,
        transcript: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        output_schema: Optional[Dict[str, Any]] = None,
        tool_choice: Optional[Union[str, Dict[str, Any]]] = "auto"
    ) -> ChatResponse:
        """Model call capability used by hydration and bootstrap.

        Prepends the system prompt to the transcript and applies the structured
        output constraint when one is given.
        """
        messages = [{"role": "system", "content": system_prompt}, *transcript]
        return await self.chat(
            messages=messages,
            tools=tools,
            tool_choice=tool_choice if tools else None,
            response_format=output_schema,
        )

    async def close(self):
        """Close HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
