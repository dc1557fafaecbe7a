from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable

import httpx
from jsonschema import validate, ValidationError

from app.core.config import settings
from app.core.json_schema import RECOMMENDATIONS_SCHEMA
from app.models import Book


logger = logging.getLogger(__name__)


class RecommendationError(Exception):
    """The model call or its output could not be turned into recommendations."""


# 生成推荐提示词（要求模型只返回固定结构的 JSON）
def build_prompt(books: Iterable[Book], count: int) -> str:
    listed = ", ".join(f"{book.title} by {book.author}" for book in books)
    return (
        f"Based on these books: {listed}. "
        f"Give me a list of {count} book recommendations with titles and authors "
        'in JSON format as { "recommendations": [ { "title": "", "author": "" } ] }'
    )


def _strip_json_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z]*\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]
    return text


def _normalize_api_path(path: str | None, default_path: str) -> str:
    resolved = (path or default_path).strip() or default_path
    if not resolved.startswith("/"):
        resolved = f"/{resolved}"
    return resolved


def _join_text_chunks(chunks: list[dict[str, Any]]) -> str:
    texts: list[str] = []
    for chunk in chunks:
        if not isinstance(chunk, dict):
            continue
        text = chunk.get("text")
        if isinstance(text, str) and text.strip():
            texts.append(text)
    return "\n".join(texts).strip()


def _extract_chat_content(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ValueError("Invalid chat response format: missing choices.")
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") if isinstance(first.get("message"), dict) else {}
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        joined = _join_text_chunks(content)
        if joined:
            return joined
    raise ValueError("Invalid chat response format: missing message content.")


def _build_chat_payload(model: str, prompt: str) -> dict[str, Any]:
    return {
        "model": model,
        "temperature": 0.7,
        "messages": [
            {"role": "system", "content": "Return only valid JSON."},
            {"role": "user", "content": prompt},
        ],
        "response_format": {"type": "json_object"},
    }


# 调用 OpenAI 兼容接口并解析为 JSON（单次请求，不重试）
def _call_openai_compatible(prompt: str, client: httpx.Client | None = None) -> Dict[str, Any]:
    base_url = settings.llm_base_url
    path = _normalize_api_path(settings.llm_api_path, "/chat/completions")
    url = f"{base_url.rstrip('/')}{path}"
    headers = {"Authorization": f"Bearer {settings.llm_api_key}"}
    payload = _build_chat_payload(settings.llm_model, prompt)

    if client is None:
        with httpx.Client(timeout=settings.llm_timeout_seconds) as owned:
            response = owned.post(url, headers=headers, json=payload)
    else:
        response = client.post(url, headers=headers, json=payload)
    response.raise_for_status()
    content = _extract_chat_content(response.json())
    return json.loads(_strip_json_fence(content))


def recommend_books(
    books: list[Book],
    count: int | None = None,
    client: httpx.Client | None = None,
) -> list[dict[str, str]]:
    """Ask the configured model for books similar to ``books``.

    Without an API key, or without any books to base the prompt on, no call is
    made and the result is empty.
    """
    limit = count or settings.recommendation_count
    if not books or not settings.llm_api_key:
        return []
    try:
        result = _call_openai_compatible(build_prompt(books, limit), client=client)
        validate(instance=result, schema=RECOMMENDATIONS_SCHEMA)
    except httpx.HTTPError as exc:
        raise RecommendationError(f"LLM request failed: {exc}") from exc
    except (ValueError, ValidationError) as exc:
        # json.JSONDecodeError 是 ValueError 的子类
        raise RecommendationError(f"LLM returned an invalid payload: {exc}") from exc

    items = result["recommendations"][:limit]
    logger.info(f"LLM returned {len(items)} recommendations")
    return [{"title": item["title"], "author": item.get("author", "")} for item in items]
