"""Chat-completion provider for OpenAI-compatible HTTP endpoints."""

from typing import Any, Dict, Optional
import httpx
import structlog

from .base import (
    CompletionDecodeError,
    CompletionEmptyError,
    CompletionProvider,
    CompletionTransportError,
)


logger = structlog.get_logger()


DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"


class OpenAIChatProvider(CompletionProvider):
    """
    Completion provider issuing one POST per turn, without retries.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        if not api_key or not api_key.strip():
            raise ValueError("An API key is required for the completion endpoint")

        self.endpoint = endpoint
        self.timeout = timeout
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _complete(self, payload: Dict[str, Any]) -> str:
        logger.debug(
            "Sending completion request",
            endpoint=self.endpoint,
            model=payload.get("model"),
            message_count=len(payload.get("messages", [])),
        )

        try:
            response = await self._client.post(
                self.endpoint, json=payload, headers=self._headers()
            )
        except httpx.HTTPError as e:
            logger.warning("Completion request failed", error=str(e))
            raise CompletionTransportError(f"Request to {self.endpoint} failed: {e}") from e

        return self._parse_reply(response)

    def _parse_reply(self, response: httpx.Response) -> str:
        """Extract the trimmed content of the first choice."""
        raw_body = response.text

        if response.is_error:
            logger.debug("Completion error body", status=response.status_code, body=raw_body)
            raise CompletionDecodeError(
                f"Completion endpoint returned HTTP {response.status_code}",
                raw_body=raw_body,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.debug("Undecodable completion body", body=raw_body)
            raise CompletionDecodeError(
                f"Response body is not JSON: {e}",
                raw_body=raw_body,
                status_code=response.status_code,
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list):
            logger.debug("Unexpected completion body", body=raw_body)
            raise CompletionDecodeError(
                "Response has no 'choices' array",
                raw_body=raw_body,
                status_code=response.status_code,
            )

        if not choices:
            raise CompletionEmptyError("Response contains no choices")

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            logger.debug("Unexpected completion body", body=raw_body)
            raise CompletionDecodeError(
                "First choice has no text content",
                raw_body=raw_body,
                status_code=response.status_code,
            )

        return content.strip()

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    def get_status(self) -> dict:
        """Get provider status."""
        status = super().get_status()
        status["endpoint"] = self.endpoint
        status["timeout"] = self.timeout
        return status
