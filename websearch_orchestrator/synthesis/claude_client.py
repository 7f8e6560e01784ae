"""
Chat capability used for query rewriting, with a Claude implementation.
"""

from anthropic import Anthropic, APIError, RateLimitError as AnthropicRateLimitError
from typing import List, Optional, Protocol, runtime_checkable
import time
import logging

from ..models import ModelInfo
from ..utils import RateLimitError, TransientError

logger = logging.getLogger(__name__)


@runtime_checkable
class ChatCapability(Protocol):
    """
    The slice of an LLM backend the orchestrator depends on.

    ``chat`` may raise on provider failure; callers degrade on their own.
    """

    def chat(self, model: str, prompt: str, system_prompt: str) -> str:
        ...

    def list_models(self) -> List[ModelInfo]:
        ...


class ClaudeChatClient:
    """
    ChatCapability backed by the Anthropic Messages API.

    Only short, single-turn completions are needed, so no retry is
    layered on top: a failed call simply means the query stays unoptimized.
    """

    def __init__(
        self,
        api_key: str,
        max_output_tokens: int = 100,
        timeout: float = 10.0,
        client: Optional[Anthropic] = None
    ):
        """
        Initialize the chat client.

        Args:
            api_key: Anthropic API key
            max_output_tokens: Maximum tokens per completion
            timeout: Request timeout in seconds
            client: Optional preconfigured Anthropic client
        """
        self.client = client or Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.max_output_tokens = max_output_tokens

    def chat(self, model: str, prompt: str, system_prompt: str) -> str:
        """
        Run a single-turn completion.

        Args:
            model: Model identifier
            prompt: User message
            system_prompt: Instruction prompt

        Returns:
            Concatenated text of the response
        """
        start_time = time.time()

        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=self.max_output_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}]
            )
        except AnthropicRateLimitError as e:
            logger.warning("Rate limited by Anthropic API")
            raise RateLimitError(retry_after=60.0) from e
        except APIError as e:
            status_code = getattr(e, 'status_code', None)
            if status_code is None or status_code >= 500:
                raise TransientError(str(e)) from e
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logger.debug(
            f"Chat completion with {model}: {response.usage.input_tokens} in, "
            f"{response.usage.output_tokens} out, {duration_ms}ms"
        )
        return text

    def list_models(self) -> List[ModelInfo]:
        """List the models the API key can use."""
        return [ModelInfo(name=model.id) for model in self.client.models.list()]
