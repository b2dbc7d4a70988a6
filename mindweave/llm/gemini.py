"""
Gemini client access - shared generation model and embedding calls.

Two backends:
  1. Vertex AI SDK (production) - used when GOOGLE_CLOUD_PROJECT is set
  2. google-generativeai (local dev) - used with GOOGLE_API_KEY / GOOGLE_AI_API_KEY

When neither is configured the AI features degrade: callers check
is_llm_configured() and fall back (empty tags, zero embeddings, canned text).
"""

from __future__ import annotations

import os
from functools import lru_cache

from mindweave.config import EMBEDDING_DIMENSIONS, EMBEDDING_MODEL
from mindweave.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL
from mindweave.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def _api_key() -> str | None:
    return os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")


def _project() -> str | None:
    return os.getenv("GOOGLE_CLOUD_PROJECT")


def is_llm_configured() -> bool:
    """True when either backend has credentials configured."""
    return bool(_api_key() or _project())


@lru_cache(maxsize=1)
def get_gemini_model():
    """
    Shared Gemini generation model (singleton via lru_cache).

    Returns:
        GenerativeModel from whichever backend is configured

    Raises:
        GeminiInitializationError: If no backend is configured or importable
    """
    project = _project()
    if project:
        try:
            import vertexai
            from vertexai.generative_models import GenerativeModel
        except ImportError as e:
            raise GeminiInitializationError(
                "GOOGLE_CLOUD_PROJECT is set but google-cloud-aiplatform is not installed"
            ) from e

        vertexai.init(project=project, location=GEMINI_LOCATION)
        logger.info(
            "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
            project,
            GEMINI_LOCATION,
            GEMINI_MODEL,
        )
        return GenerativeModel(GEMINI_MODEL)

    api_key = _api_key()
    if not api_key:
        raise GeminiInitializationError(
            "Gemini not configured. Set GOOGLE_CLOUD_PROJECT or GOOGLE_API_KEY."
        )

    try:
        import google.generativeai as genai
    except ImportError as e:
        raise GeminiInitializationError("google-generativeai is not installed") from e

    genai.configure(api_key=api_key)
    logger.info("Initialized Gemini model (google-generativeai): model=%s", GEMINI_MODEL)
    return genai.GenerativeModel(GEMINI_MODEL)


def embed_text(text: str, task_type: str = "RETRIEVAL_DOCUMENT") -> list[float]:
    """
    Embed text with the configured embedding model.

    Returns:
        EMBEDDING_DIMENSIONS floats

    Raises:
        GeminiInitializationError: If no backend is configured
        Exception: Backend errors propagate; callers decide the fallback
    """
    if _project():
        from vertexai.language_models import TextEmbeddingInput

        get_gemini_model()  # ensures vertexai.init has run
        model = _vertex_embedding_model(EMBEDDING_MODEL)
        result = model.get_embeddings(
            [TextEmbeddingInput(text, task_type)],
            output_dimensionality=EMBEDDING_DIMENSIONS,
        )
        return list(result[0].values)[:EMBEDDING_DIMENSIONS]

    if not _api_key():
        raise GeminiInitializationError("Gemini not configured")

    import google.generativeai as genai

    get_gemini_model()  # ensures genai.configure has run
    result = genai.embed_content(
        model=f"models/{EMBEDDING_MODEL}",
        content=text,
        task_type=task_type,
        output_dimensionality=EMBEDDING_DIMENSIONS,
    )
    return list(result["embedding"])[:EMBEDDING_DIMENSIONS]


@lru_cache(maxsize=2)
def _vertex_embedding_model(name: str):
    from vertexai.language_models import TextEmbeddingModel

    return TextEmbeddingModel.from_pretrained(name)


def clear_model_cache() -> None:
    """Forget cached model instances (tests, credential changes)."""
    get_gemini_model.cache_clear()
    _vertex_embedding_model.cache_clear()
    logger.info("Cleared Gemini model cache")
