"""
Extract event form fields from free-form AI answers.

The chat app is asked to reply with a JSON object, but in practice it may
wrap it in a fenced code block, split it across several outputs, or use
different key names. Everything here is lenient: values that cannot be
understood are dropped rather than raising.
"""

import json
import logging
import math
import re
from datetime import datetime
from typing import Any, Optional

from yurushiri.models.event import CATCH_ALL_CATEGORY, EVENT_CATEGORIES
from yurushiri.models.views import AiFormFieldMapping

logger = logging.getLogger(__name__)

CATEGORY_SYNONYMS = {
    "technology": "テクノロジー",
    "tech": "テクノロジー",
    "it": "テクノロジー",
    "software": "テクノロジー",
    "developer": "テクノロジー",
    "engineering": "テクノロジー",
    "ai": "テクノロジー",
    "デジタル": "テクノロジー",
    "テック": "テクノロジー",
    "design": "デザイン",
    "designer": "デザイン",
    "creative": "デザイン",
    "ux": "デザイン",
    "ui": "デザイン",
    "art": "アート",
    "arts": "アート",
    "culture": "アート",
    "cultural": "アート",
    "exhibition": "アート",
    "gallery": "アート",
    "business": "ビジネス",
    "marketing": "ビジネス",
    "startup": "ビジネス",
    "finance": "ビジネス",
    "management": "ビジネス",
    "教育": "教育",
    "education": "教育",
    "learning": "教育",
    "study": "教育",
    "workshop": "教育",
    "lecture": "教育",
    "entertainment": "エンターテイメント",
    "music": "エンターテイメント",
    "movie": "エンターテイメント",
    "film": "エンターテイメント",
    "game": "エンターテイメント",
    "festival": "エンターテイメント",
    "sports": "スポーツ",
    "sport": "スポーツ",
    "fitness": "スポーツ",
    "athletic": "スポーツ",
    "soccer": "スポーツ",
    "baseball": "スポーツ",
    "その他": "その他",
    "other": "その他",
    "others": "その他",
    "misc": "その他",
    "general": "その他",
}

# Checked in order after the synonym table misses
CATEGORY_HEURISTICS = [
    (("テクノロジー", "テック", "it", "ai"), "テクノロジー"),
    (("アート", "芸術", "クリエイ", "デザイン"), "アート"),
    (("ビジネス", "起業", "スタートアップ", "マーケ"), "ビジネス"),
    (("教育", "勉強", "学習", "セミナー"), "教育"),
    (("エンタ", "音楽", "ライブ", "映画", "フェス"), "エンターテイメント"),
    (("スポーツ", "運動", "フィットネス", "マラソン"), "スポーツ"),
]

TRUE_WORDS = {"true", "yes", "公開", "public", "open", "1", "available"}
FALSE_WORDS = {"false", "no", "非公開", "private", "closed", "0"}

# English month-name layouts tried after ISO parsing fails
FALLBACK_DATE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%a, %d %b %Y",
)

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
LOOSE_DATE_RE = re.compile(r"(\d{4})[^0-9]?(\d{1,2})[^0-9]?(\d{1,2})")
SIMPLE_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
EXPLICIT_TIME_RE = re.compile(r"(午前|午後|am|pm)?\s*(\d{1,2})(?:[:時](\d{1,2}))?", re.IGNORECASE)
CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

FIELD_CANDIDATE_KEYS = (
    "formFields",
    "form_fields",
    "structuredData",
    "structured_data",
    "outputs",
)


def _format_time(hour: int, minute: int) -> Optional[str]:
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return f"{hour:02d}:{minute:02d}"
    return None


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # Integers too large for a float
        return False


def _trimmed(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _first_present(record: dict, *keys: str) -> Any:
    # Falls through on None only, matching how JSON nulls are treated
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def try_parse_json_string(value: str) -> Any:
    """Parse a string as JSON directly or from a fenced code block, else None"""
    trimmed = value.strip()

    if trimmed.startswith("{") or trimmed.startswith("["):
        try:
            return json.loads(trimmed)
        except ValueError:
            pass

    match = CODE_BLOCK_RE.search(trimmed)
    if match and match.group(1):
        try:
            return json.loads(match.group(1))
        except ValueError:
            pass

    return None


def parse_bool_value(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_WORDS:
            return True
        if normalized in FALSE_WORDS:
            return False
    return None


def parse_number_value(value: Any) -> Optional[float]:
    """Finite numbers as-is; strings keep only digits, '.' and '-' before parsing"""
    if _is_number(value):
        return value
    if isinstance(value, str):
        digits = re.sub(r"[^0-9.\-]", "", value).strip()
        if not digits:
            return None
        # Leading numeric prefix, like parseFloat("12.5-3")
        match = re.match(r"-?\d*\.?\d+|-?\d+", digits)
        if not match:
            return None
        try:
            parsed = float(match.group(0))
        except ValueError:
            return None
        if math.isfinite(parsed):
            return parsed
    return None


def parse_date_value(value: Any) -> Optional[str]:
    """
    Normalize a date into "YYYY-MM-DD".

    Handles ISO dates, Japanese dates ("2025年3月15日"), slash dates and a
    few English month-name layouts. Returns None when nothing matches.
    """
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    if ISO_DATE_RE.match(trimmed):
        return trimmed

    normalized = re.sub(r"年|/", "-", trimmed)
    normalized = normalized.replace("月", "-").replace("日", "")
    normalized = re.sub(r"\s+", " ", normalized)

    match = LOOSE_DATE_RE.search(normalized)
    if match:
        year, month, day = match.groups()
        return f"{year.zfill(4)}-{month.zfill(2)}-{day.zfill(2)}"

    try:
        return datetime.fromisoformat(trimmed).date().isoformat()
    except ValueError:
        pass

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt).date().isoformat()
        except ValueError:
            continue

    return None


def parse_time_value(value: Any) -> Optional[str]:
    """
    Normalize a time into 24-hour "HH:MM".

    Strings accept "14:30", "9:05", "午後3時", "午前10時30", "pm 7".
    Numbers are minutes since midnight, clamped to the day.
    """
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None

        simple = SIMPLE_TIME_RE.match(trimmed)
        if simple:
            formatted = _format_time(int(simple.group(1)), int(simple.group(2)))
            if formatted:
                return formatted

        explicit = EXPLICIT_TIME_RE.search(trimmed)
        if explicit:
            period = (explicit.group(1) or "").lower()
            hour = int(explicit.group(2))
            minute = int(explicit.group(3)) if explicit.group(3) else 0
            if period in ("午後", "pm") and hour < 12:
                hour += 12
            if period in ("午前", "am") and hour == 12:
                hour = 0
            return _format_time(hour, minute)

        return None

    if _is_number(value):
        total_minutes = max(0, min(23 * 60 + 59, math.floor(value + 0.5)))
        return _format_time(total_minutes // 60, total_minutes % 60)

    return None


def normalize_category(value: Any) -> Optional[str]:
    """
    Map a free-form category onto the fixed vocabulary.

    Anything non-empty that matches nothing becomes the catch-all "その他".
    """
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    if trimmed in EVENT_CATEGORIES:
        return trimmed

    lower = trimmed.lower()
    if lower in CATEGORY_SYNONYMS:
        return CATEGORY_SYNONYMS[lower]

    spaced = re.sub(r"[、・|]", " ", lower)
    for keyword, category in CATEGORY_SYNONYMS.items():
        if keyword in spaced:
            return category

    for keywords, category in CATEGORY_HEURISTICS:
        if any(keyword.lower() in lower for keyword in keywords):
            return category

    return CATCH_ALL_CATEGORY


def extract_form_fields(raw: Any) -> Optional[AiFormFieldMapping]:
    """
    Build a partial event draft from one AI response fragment.

    Args:
        raw: A JSON string (bare or fenced), a list of fragments, or a dict

    Returns:
        AiFormFieldMapping with at least one field, or None
    """
    if not raw:
        return None

    if isinstance(raw, str):
        parsed = try_parse_json_string(raw)
        if not parsed:
            return None
        return extract_form_fields(parsed)

    if isinstance(raw, list):
        merged = AiFormFieldMapping()
        for item in raw:
            mapped = extract_form_fields(item)
            if mapped:
                merged = merged.merge(mapped)
        return None if merged.is_empty() else merged

    if not isinstance(raw, dict):
        return None

    fields: dict[str, Any] = {
        "title": _trimmed(raw.get("title")),
        "description": _trimmed(raw.get("description")),
        "date": parse_date_value(_first_present(raw, "date", "eventDate", "startDate")),
        "time": parse_time_value(_first_present(raw, "time", "eventTime", "startTime")),
        "location": _trimmed(raw.get("location")),
        "category": normalize_category(_first_present(raw, "category", "type", "topic")),
        "is_public": parse_bool_value(_first_present(raw, "isPublic", "visibility", "public")),
        "image_url": _trimmed(_first_present(raw, "imageUrl", "coverImageUrl", "bannerUrl")),
    }

    capacity = parse_number_value(
        _first_present(raw, "maxAttendees", "capacity", "maxParticipants")
    )
    if capacity is not None:
        fields["max_attendees"] = max(1, math.floor(capacity + 0.5))

    mapping = AiFormFieldMapping(**{k: v for k, v in fields.items() if v is not None})
    return None if mapping.is_empty() else mapping


def response_candidates(response: dict) -> list:
    """Fragments of a chat response that may carry form fields, in priority order"""
    candidates: list = []

    data = response.get("data")
    if isinstance(data, dict):
        candidates.extend(data.get(key) for key in FIELD_CANDIDATE_KEYS)
        candidates.append(data)

    if isinstance(response.get("answer"), str):
        candidates.append(response["answer"])

    if response.get("outputs"):
        candidates.append(response["outputs"])

    message = response.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), list):
        candidates.append(message["content"])

    return candidates


def extract_from_response(response: Any) -> Optional[AiFormFieldMapping]:
    """Merge every field mapping found in a chat response; later candidates win"""
    if not isinstance(response, dict):
        return None

    merged = AiFormFieldMapping()
    for candidate in response_candidates(response):
        mapped = extract_form_fields(candidate)
        if mapped:
            merged = merged.merge(mapped)

    if merged.is_empty():
        logger.info("AI response contained no applicable form fields")
        return None
    return merged
