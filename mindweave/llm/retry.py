"""Shared LLM call with retry logic.

Every AI feature sends its prompt through call_llm(). Transient Google API
failures are converted to builtin exception types and retried with
exponential backoff; anything else propagates on the first failure. Each
caller wraps the call in its own try/except to apply its fallback policy.
"""

from __future__ import annotations

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from mindweave.config import LLM_MAX_RETRIES, LLM_TIMEOUT_SECONDS
from mindweave.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from mindweave.llm.gemini import get_gemini_model
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, time_block

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
def call_llm(
    prompt: str,
    counter_prefix: str = "llm",
    max_output_tokens: int | None = None,
    temperature: float | None = None,
    json_response: bool = False,
) -> str:
    """Call Gemini with retry and Google API exception conversion.

    Args:
        prompt: The prompt to send to the model.
        counter_prefix: Telemetry counter prefix (e.g., "tags", "answer").
        max_output_tokens: Override for GEMINI_MAX_TOKENS.
        temperature: Override for GEMINI_TEMPERATURE.
        json_response: Ask the model for application/json output.

    Returns:
        The model's response text ("" when the model returned nothing).

    Raises:
        TimeoutError: On deadline exceeded (retried).
        ConnectionError: On service unavailable or internal error (retried).
        OSError: On resource exhausted / rate limited (retried).
        Exception: On other errors (not retried, caller handles).
    """
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    model = get_gemini_model()

    generation_config = {
        "temperature": GEMINI_TEMPERATURE if temperature is None else temperature,
        "max_output_tokens": max_output_tokens or GEMINI_MAX_TOKENS,
    }
    if json_response:
        generation_config["response_mime_type"] = "application/json"

    try:
        with time_block(f"ai.{counter_prefix}.latency"):
            response = model.generate_content(prompt, generation_config=generation_config)
        counter(f"ai.{counter_prefix}.calls")
        return response.text or ""
    except DeadlineExceeded as e:
        counter(f"ai.{counter_prefix}.timeout")
        logger.warning("LLM call timed out after %ds", LLM_TIMEOUT_SECONDS)
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"ai.{counter_prefix}.service_unavailable")
        logger.warning("LLM service unavailable, will retry: %s", e)
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"ai.{counter_prefix}.rate_limited")
        logger.warning("LLM rate limited (429), will retry: %s", e)
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"ai.{counter_prefix}.internal_error")
        logger.warning("LLM internal error (500), will retry: %s", e)
        raise ConnectionError(f"LLM internal error: {e}") from e
    except ValueError as e:
        # response.text raises ValueError when the candidate was blocked
        counter(f"ai.{counter_prefix}.blocked")
        logger.warning("LLM response had no text: %s", e)
        return ""
