"""One-line AI description of what an event will feel like"""

import hashlib
import logging
from typing import Any, Iterable, Mapping, Optional

from aiocache import Cache, cached

from yurushiri.backends.dify_client import DifyClient
from yurushiri.errors import DifyError
from yurushiri.models.labels import (
    AGE_GROUP_LABELS,
    AGE_GROUP_ORDER,
    OCCUPATION_LABELS,
    OCCUPATION_ORDER,
)

logger = logging.getLogger(__name__)

INSIGHT_CACHE_TTL = 600
# The event detail page render waits on this call
INSIGHT_TIMEOUT = 20.0
DESCRIPTION_PROMPT_LIMIT = 500
ANSWER_KEYS = ("answer", "output_text", "message", "result", "text")


def _distribution(
    values: Iterable[Optional[str]], order: list[str], labels: Mapping[str, str]
) -> Optional[str]:
    counts: dict[str, int] = {}
    for value in values:
        if value:
            counts[value] = counts.get(value, 0) + 1
    parts = [f"{labels[key]}: {counts[key]}人" for key in order if counts.get(key)]
    return "、".join(parts) if parts else None


def build_insight_prompt(event, registrations: list) -> str:
    """Compose the Japanese prompt from the event and its attendee mix"""
    ages = _distribution(
        (r.age_group for r in registrations), AGE_GROUP_ORDER, AGE_GROUP_LABELS
    )
    occupations = _distribution(
        (r.occupation for r in registrations), OCCUPATION_ORDER, OCCUPATION_LABELS
    )

    lines = [
        f"イベントタイトル: {event.title}",
        f"カテゴリ: {event.category}",
    ]
    if event.description:
        lines.append(f"イベント説明: {event.description[:DESCRIPTION_PROMPT_LIMIT]}")
    if ages:
        lines.append(f"参加者の年代構成: {ages}")
    if occupations:
        lines.append(f"参加者の職種構成: {occupations}")
    lines += [
        "上記の情報をもとに、このイベントがどんな体験になるかを日本語で60字以内で端的に説明してください。",
        "「コミュニケーション多め」や「手を動かす」など、イベントの雰囲気を示す短い表現を必ず含めてください。",
        "箇条書きは使わず、文末はフラットな言い切りにしてください。",
    ]
    return "\n".join(lines)


def extract_answer(response: Any) -> Optional[str]:
    """Pull the answer text out of a chat response, whatever key it came under"""
    if not isinstance(response, dict):
        return None

    for key in ANSWER_KEYS:
        value = response.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    for message in response.get("messages") or []:
        if not isinstance(message, dict) or not isinstance(message.get("data"), dict):
            continue
        content = message["data"].get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()

    return None


def _insight_cache_key(func, client, event_id: str, registration_count: int, prompt: str):
    digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
    return f"event-insight:{event_id}:{registration_count}:{digest}"


@cached(ttl=INSIGHT_CACHE_TTL, cache=Cache.MEMORY, key_builder=_insight_cache_key)
async def _fetch_insight(
    client: DifyClient, event_id: str, registration_count: int, prompt: str
) -> str:
    # Raises instead of returning None so failures are never cached
    response = await client.send_chat_message(
        query=prompt,
        response_mode="blocking",
        user=f"event-ai-summary-{event_id}",
        timeout=INSIGHT_TIMEOUT,
    )
    answer = extract_answer(response)
    if answer is None:
        raise DifyError("Dify response did not contain an answer field")
    return answer


async def generate_event_insight(
    client: DifyClient, event, registrations: list
) -> Optional[str]:
    """
    Generate (or reuse a cached) short description for an event.

    Returns:
        The description, or None when the AI is unavailable or answered nothing
    """
    if not client.is_configured:
        return None

    prompt = build_insight_prompt(event, registrations)
    try:
        return await _fetch_insight(client, str(event.id), len(registrations), prompt)
    except DifyError as e:
        logger.warning(f"Failed to generate AI event insight for {event.id}: {e}")
        return None
