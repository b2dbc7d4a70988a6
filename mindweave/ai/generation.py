"""
Text generation wrappers over Gemini.

Each function builds one prompt, makes one call_llm() request and shapes the
reply. Failure policy is per function:

- generate_tags, generate_highlight_insight, generate_connection_insight,
  generate_cluster_name, generate_knowledge_personality: never raise, fall
  back to an empty or canned value
- answer_question, summarize_content, generate_linkedin_post,
  generate_weekly_briefing: raise when the LLM is not configured or fails
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from mindweave.llm.gemini import is_llm_configured
from mindweave.llm.retry import call_llm
from mindweave.observability.logging import get_logger
from mindweave.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

NO_ANSWER_MESSAGE = "Sorry, I could not generate an answer."
DEFAULT_CLUSTER_NAME = "Cluster"
DEFAULT_CLUSTER_DESCRIPTION = "Group of related items"

TONE_INSTRUCTIONS = {
    "professional": (
        "Write in a professional, authoritative tone. Use clear, direct language. "
        "Include data-driven insights where possible. Position the author as a thought leader."
    ),
    "casual": (
        "Write in a conversational, approachable tone. Use first person. "
        "Be relatable and authentic. Include personal reflections or opinions."
    ),
    "storytelling": (
        "Write as a narrative. Start with a hook or anecdote. Build tension or curiosity. "
        "End with a takeaway or lesson learned."
    ),
}

LENGTH_RANGES = {
    "short": "50-100 words (2-3 short paragraphs)",
    "medium": "100-200 words (3-4 paragraphs)",
    "long": "200-300 words (4-6 paragraphs)",
}


class LLMNotConfiguredError(RuntimeError):
    """Raised by generation functions that have no offline fallback."""

    def __init__(self) -> None:
        super().__init__("GOOGLE_API_KEY not set")


@dataclass
class ContextItem:
    """A knowledge-base item passed to a prompt."""

    title: str
    body: str | None = None
    tags: list[str] = field(default_factory=list)
    url: str | None = None
    type: str = "note"


def _require_llm() -> None:
    if not is_llm_configured():
        raise LLMNotConfiguredError()


def _strip_code_fence(text: str) -> str:
    text = re.sub(r"^```(?:json)?\s*", "", text.strip(), flags=re.IGNORECASE)
    return re.sub(r"\s*```\s*$", "", text).strip()


# ---------------------------------------------------------------------------
# Tags, answers, summaries
# ---------------------------------------------------------------------------


def generate_tags(
    title: str, body: str | None = None, url: str | None = None, content_type: str = "note"
) -> list[str]:
    """Suggest 3-5 lowercase tags. Returns [] when unconfigured or on any error."""
    if not is_llm_configured():
        logger.warning("Skipping tag generation - LLM not configured")
        return []

    lines = [
        f"Analyze this {content_type} and suggest 3-5 relevant tags that would help "
        "organize and find it later.",
        "",
        f"Title: {sanitize_for_prompt(title)}",
    ]
    if body:
        lines.append(f"Content: {sanitize_for_prompt(body, 1000)}")
    if url:
        lines.append(f"URL: {url}")
    lines += [
        "",
        "Return only the tags as a comma-separated list, nothing else. Make tags:",
        "- Concise (1-3 words)",
        "- Specific to the content",
        "- Useful for categorization",
        "- Lowercase",
        "",
        "Example format: machine learning, python, tutorial, data science",
    ]

    try:
        text = call_llm("\n".join(lines), counter_prefix="tags", max_output_tokens=100)
    except Exception as e:
        logger.error("Error generating tags: %s", e)
        return []

    return [tag.strip().lower() for tag in text.split(",") if tag.strip()]


def answer_question(question: str, context: list[ContextItem]) -> str:
    """
    Answer from the user's knowledge base, citing items as [1], [2], ...

    Raises:
        LLMNotConfiguredError: If the LLM is not configured
    """
    _require_llm()

    context_text = "\n\n".join(
        f"[{idx}] {item.title}\n"
        f"{sanitize_for_prompt(item.body, 500)}\n"
        f"Tags: {', '.join(item.tags)}"
        for idx, item in enumerate(context, start=1)
    )

    prompt = (
        "You are a helpful assistant that answers questions based on the user's "
        "personal knowledge base.\n\n"
        "Here are the most relevant items from their knowledge base:\n\n"
        f"{context_text}\n\n"
        f"User question: {sanitize_for_prompt(question)}\n\n"
        "Please answer the question using the information from the knowledge base. "
        "If the answer cannot be found in the knowledge base, say so clearly. "
        "Cite which items you used by their numbers [1], [2], etc."
    )

    text = call_llm(prompt, counter_prefix="answer")
    return text or NO_ANSWER_MESSAGE


def summarize_content(text: str) -> str:
    """
    Two-to-three sentence summary of text (first 4000 chars).

    Raises:
        LLMNotConfiguredError: If the LLM is not configured
    """
    _require_llm()
    prompt = f"Summarize this content in 2-3 sentences:\n\n{sanitize_for_prompt(text, 4000)}"
    return call_llm(prompt, counter_prefix="summary").strip()


def generate_highlight_insight(title: str, body: str | None, tags: list[str]) -> str:
    """One sentence on why an item is worth revisiting today. Never raises."""
    fallback = f'"{title}" — a great piece to revisit today.'
    if not is_llm_configured():
        return fallback

    prompt = (
        "You are a knowledge coach. Given the following content from a user's personal "
        "knowledge base, write ONE short sentence (max 20 words) explaining why this "
        "knowledge is worth revisiting today. Be specific and insightful, not generic.\n\n"
        f"Title: {sanitize_for_prompt(title)}\n"
        + (f"Content: {sanitize_for_prompt(body, 500)}\n" if body else "")
        + f"Tags: {', '.join(tags)}\n\n"
        "Output ONLY the sentence, no quotes, no preamble."
    )

    try:
        text = call_llm(prompt, counter_prefix="highlight", max_output_tokens=100)
    except Exception as e:
        logger.error("Error generating highlight insight: %s", e)
        return fallback
    return text.strip() or fallback


# ---------------------------------------------------------------------------
# Posts and briefings
# ---------------------------------------------------------------------------


def generate_linkedin_post(
    content: list[ContextItem], tone: str, length: str, include_hashtags: bool
) -> str:
    """
    LinkedIn post built from knowledge-base items.

    Raises:
        ValueError: If tone or length is unknown
        LLMNotConfiguredError: If the LLM is not configured
        RuntimeError: If the model returned nothing
    """
    if tone not in TONE_INSTRUCTIONS:
        raise ValueError("Invalid tone")
    if length not in LENGTH_RANGES:
        raise ValueError("Invalid length")
    _require_llm()

    blocks = []
    for idx, item in enumerate(content, start=1):
        parts = [f"[{idx}] Title: {sanitize_for_prompt(item.title)}", f"Type: {item.type}"]
        if item.body:
            parts.append(f"Content: {sanitize_for_prompt(item.body, 2000)}")
        if item.url:
            parts.append(f"URL: {item.url}")
        parts.append(f"Tags: {', '.join(item.tags)}")
        blocks.append("\n".join(parts))

    hashtags = (
        "Include 3-5 relevant hashtags at the end of the post."
        if include_hashtags
        else "Do NOT include any hashtags."
    )
    prompt = (
        "You are a LinkedIn post writer. Generate a LinkedIn post based on the following "
        "knowledge base content.\n\n"
        f"{TONE_INSTRUCTIONS[tone]}\n\n"
        f"Target length: {LENGTH_RANGES[length]}\n\n"
        f"{hashtags}\n\n"
        "Source content:\n\n"
        + "\n\n".join(blocks)
        + "\n\nWrite the LinkedIn post now. Output ONLY the post text, no preamble, "
        "no explanation, no quotes around it."
    )

    text = call_llm(prompt, counter_prefix="linkedin_post").strip()
    if not text:
        raise RuntimeError("Empty response from AI")
    return text


def generate_weekly_briefing(items: list[ContextItem], themes: list[str]) -> str:
    """
    LinkedIn-style weekly briefing synthesizing a week of captured knowledge.

    Raises:
        LLMNotConfiguredError: If the LLM is not configured
        RuntimeError: If the model returned nothing
    """
    _require_llm()

    listing = "\n".join(
        f"- {sanitize_for_prompt(item.title)}"
        + (f": {sanitize_for_prompt(item.body, 300)}" if item.body else "")
        for item in items
    )
    prompt = (
        "You are helping a knowledge worker share what they learned this week on LinkedIn.\n\n"
        f"This week's main themes: {', '.join(themes) if themes else 'varied topics'}\n\n"
        f"Items they captured this week:\n{listing}\n\n"
        "Write a weekly briefing post of 100-200 words that connects these items into a "
        "few key takeaways. Open with a one-line hook, use short paragraphs, and end with "
        "a question to the reader. Include 3-5 relevant hashtags at the end.\n\n"
        "Output ONLY the post text, no preamble."
    )

    text = call_llm(prompt, counter_prefix="weekly_briefing").strip()
    if not text:
        raise RuntimeError("Empty response from AI")
    return text


# ---------------------------------------------------------------------------
# Structured small generations
# ---------------------------------------------------------------------------


def _fallback_personality(stats: dict[str, Any]) -> dict[str, str]:
    split = stats.get("content_type_split") or {}
    notes, links, files = split.get("notes", 0), split.get("links", 0), split.get("files", 0)
    top = ", ".join(stats.get("top_tags", [])[:3]) or "many topics"

    if links > notes and links >= files:
        personality = "The Curator"
        description = f"You collect the best of the web, especially around {top}."
    elif files > notes:
        personality = "The Archivist"
        description = f"You keep a careful library of documents on {top}."
    else:
        personality = "The Thinker"
        description = f"You capture your own ideas, most often about {top}."
    return {"personality": personality, "description": description}


def generate_knowledge_personality(stats: dict[str, Any]) -> dict[str, str]:
    """
    Name the user's knowledge personality from Wrapped stats.

    Args:
        stats: top_tags, total_items, content_type_split, longest_streak

    Returns:
        {"personality": "The ...", "description": one sentence}. Never raises.
    """
    if not is_llm_configured():
        return _fallback_personality(stats)

    split = stats.get("content_type_split") or {}
    prompt = (
        "Based on this person's knowledge-capture habits, give them a fun 'knowledge "
        "personality' title (2-4 words, starting with 'The') and a one-sentence description.\n\n"
        f"Top topics: {', '.join(stats.get('top_tags', []))}\n"
        f"Total items saved: {stats.get('total_items', 0)}\n"
        f"Notes: {split.get('notes', 0)}, Links: {split.get('links', 0)}, "
        f"Files: {split.get('files', 0)}\n"
        f"Longest daily streak: {stats.get('longest_streak', 0)} days\n\n"
        'Respond in JSON format: {"personality": "The ...", "description": "..."}'
    )

    try:
        text = call_llm(prompt, counter_prefix="personality", json_response=True)
        parsed = json.loads(_strip_code_fence(text))
        personality = str(parsed.get("personality", "")).strip()
        description = str(parsed.get("description", "")).strip()
        if personality and description:
            return {"personality": personality, "description": description}
    except Exception as e:
        logger.error("Error generating knowledge personality: %s", e)

    return _fallback_personality(stats)


def generate_cluster_name(items: list[dict[str, str]]) -> dict[str, str]:
    """
    Short name and description for a group of items (title/type dicts).

    Falls back to a regex pull of "name" when the reply is not valid JSON and
    to the defaults when the LLM is unavailable.
    """
    default = {"name": DEFAULT_CLUSTER_NAME, "description": DEFAULT_CLUSTER_DESCRIPTION}
    if not is_llm_configured():
        return default

    titles = ", ".join(sanitize_for_prompt(i["title"]) for i in items[:10])
    types = ", ".join(sorted({i["type"] for i in items}))
    prompt = (
        "Based on these content items, suggest a short cluster name (2-4 words) and brief "
        "description (1 sentence).\n\n"
        f"Content titles: {titles}\n"
        f"Content types: {types}\n\n"
        'Respond in JSON format:\n{"name": "cluster name", "description": "brief description"}'
    )

    try:
        text = call_llm(prompt, counter_prefix="cluster_name", max_output_tokens=100)
    except Exception as e:
        logger.error("Error generating cluster name: %s", e)
        return default

    return parse_cluster_name(text)


def parse_cluster_name(text: str) -> dict[str, str]:
    try:
        parsed = json.loads(_strip_code_fence(text))
        return {
            "name": parsed.get("name") or DEFAULT_CLUSTER_NAME,
            "description": parsed.get("description") or DEFAULT_CLUSTER_DESCRIPTION,
        }
    except (ValueError, AttributeError):
        match = re.search(r'"name"\s*:\s*"([^"]+)"', text)
        return {
            "name": match.group(1) if match else DEFAULT_CLUSTER_NAME,
            "description": DEFAULT_CLUSTER_DESCRIPTION,
        }


def generate_connection_insight(a: ContextItem, b: ContextItem, similarity: float) -> str:
    """One sentence on what links two items from different topic areas. Never raises."""
    fallback = f'"{a.title}" and "{b.title}" share an unexpected thread worth exploring.'
    if not is_llm_configured():
        return fallback

    prompt = (
        "Two items from a user's knowledge base come from different topic areas but are "
        f"semantically related (similarity {similarity:.2f}).\n\n"
        f"Item A: {sanitize_for_prompt(a.title)}\n"
        f"{sanitize_for_prompt(a.body, 300)}\nTags: {', '.join(a.tags)}\n\n"
        f"Item B: {sanitize_for_prompt(b.title)}\n"
        f"{sanitize_for_prompt(b.body, 300)}\nTags: {', '.join(b.tags)}\n\n"
        "In ONE sentence (max 30 words), describe the non-obvious connection between them. "
        "Output ONLY the sentence."
    )

    try:
        text = call_llm(prompt, counter_prefix="connection", max_output_tokens=100)
    except Exception as e:
        logger.error("Error generating connection insight: %s", e)
        return fallback
    return text.strip() or fallback


def generate_search_suggestions(query: str, topics: list[str]) -> list[str]:
    """Up to 3 related queries, each under 50 chars. Returns [] on any failure."""
    if not is_llm_configured() or len(query) < 2:
        return []

    prompt = (
        f'Given a user searching "{sanitize_for_prompt(query, 200)}" in their personal '
        f"knowledge base about these topics: {', '.join(topics)}\n\n"
        "Suggest 3 related search queries they might want to try. Return only the "
        "suggestions, one per line, nothing else."
    )

    try:
        text = call_llm(prompt, counter_prefix="search_suggestions", max_output_tokens=100)
    except Exception as e:
        logger.error("Error generating AI search suggestions: %s", e)
        return []

    lines = [line.strip() for line in text.splitlines()]
    return [line for line in lines if 0 < len(line) < 50][:3]
