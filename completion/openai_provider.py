"""Completion provider backed by the OpenAI chat completions API."""
import json
import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when a completion cannot be produced."""


class OpenAICompletionProvider:
    """Client for text generation through OpenAI chat completions."""

    BASE_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_MODEL = "gpt-3.5-turbo"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout: int = 30
    ):
        """
        Initialize the completion provider.

        Args:
            api_key: OpenAI API key (AI features are disabled without one)
            model: Default model identifier
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def is_available(self) -> bool:
        """Return True if an API key is configured."""
        return bool(self.api_key)

    def complete(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        model: Optional[str] = None
    ) -> str:
        """
        Generate text for a system + user prompt.

        Args:
            system: System message
            user: User message
            temperature: Sampling temperature
            max_tokens: Maximum output tokens (provider default if None)
            json_mode: Request a JSON object response
            model: Model identifier override

        Returns:
            Generated message content

        Raises:
            CompletionError: If the provider is not configured, all retries
                fail, or the response has no content
        """
        if not self.is_available():
            raise CompletionError("OpenAI API key is not configured")

        payload: Dict[str, Any] = {
            'model': model or self.model,
            'messages': [
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': user},
            ],
            'temperature': temperature,
        }
        if max_tokens is not None:
            payload['max_tokens'] = max_tokens
        if json_mode:
            payload['response_format'] = {'type': 'json_object'}

        data = self._post_with_retry(payload)

        try:
            content = data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionError(f"Unexpected completion response: {e}") from e

        if not content:
            raise CompletionError("Completion response was empty")

        return content.strip()

    def complete_json(self, system: str, user: str, **kwargs) -> Dict[str, Any]:
        """
        Generate a JSON object for a system + user prompt.

        Raises:
            CompletionError: If the content is not a JSON object
        """
        content = self.complete(system, user, json_mode=True, **kwargs)
        try:
            result = json.loads(self._strip_code_fence(content))
        except json.JSONDecodeError as e:
            raise CompletionError(f"Completion was not valid JSON: {e}") from e

        if not isinstance(result, dict):
            raise CompletionError("Completion JSON was not an object")
        return result

    def _strip_code_fence(self, content: str) -> str:
        if "```" in content:
            content = content.split("```")[1]
            if content.strip().startswith("json"):
                content = content.split("\n", 1)[1] if "\n" in content else ""
        return content.strip()

    def _post_with_retry(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Post a chat completion request with retry logic.

        Args:
            payload: Request body

        Returns:
            Decoded JSON response

        Raises:
            CompletionError: If all retry attempts fail
        """
        headers = {
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
        }

        max_retries = 3
        base_delay = 1  # seconds

        for attempt in range(max_retries):
            try:
                logger.info(
                    f"Requesting completion (attempt {attempt + 1}/{max_retries})"
                )
                response = requests.post(
                    self.BASE_URL,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout
                )
                if 400 <= response.status_code < 500 and response.status_code != 429:
                    # Client errors do not succeed on retry
                    logger.error(
                        f"Completion request rejected with status {response.status_code}"
                    )
                    raise CompletionError(
                        f"Completion request rejected: HTTP {response.status_code}"
                    )
                response.raise_for_status()
                return response.json()

            except (requests.RequestException, ValueError) as e:
                if attempt < max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Completion request failed (attempt {attempt + 1}/{max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise CompletionError(f"Completion request failed: {e}") from e
