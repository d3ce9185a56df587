"""Decode image-transform answers from the chat API"""

import re
from dataclasses import dataclass
from typing import Any, Literal, Optional
from urllib.parse import unquote, urlparse

DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;]+);base64,(?P<data>.+)$", re.DOTALL)
HTTP_URL_RE = re.compile(r"https?://[\w\-._~:/?#\[\]@!$&'()*+,;=%]+")

EXTENSION_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}

DEFAULT_IMAGE_MIME = "image/png"
DEFAULT_IMAGE_NAME = "image.png"


@dataclass(frozen=True)
class ImageResult:
    """Either inline base64 image data or a URL to fetch it from"""

    kind: Literal["base64", "url"]
    value: str


def sanitize_url(url: Any) -> Optional[str]:
    """Trim whitespace and trailing ')' left over from markdown links"""
    if not isinstance(url, str):
        return None
    sanitized = url.strip().rstrip(")")
    return sanitized or None


def parse_data_url(value: str) -> Optional[tuple[str, str]]:
    """Split "data:<mime>;base64,<data>" into (mime, data)"""
    match = DATA_URL_RE.match(value)
    if not match:
        return None
    return match.group("mime"), match.group("data")


def guess_mime_type(file_name: Optional[str]) -> str:
    if not file_name:
        return DEFAULT_IMAGE_MIME
    extension = file_name.rsplit(".", 1)[-1].lower()
    return EXTENSION_MIME_TYPES.get(extension, DEFAULT_IMAGE_MIME)


def file_name_from_url(url: Optional[str]) -> str:
    if not url:
        return DEFAULT_IMAGE_NAME
    candidate = urlparse(url).path.rsplit("/", 1)[-1]
    if candidate.strip():
        return unquote(candidate)
    return DEFAULT_IMAGE_NAME


def _url(value: Any) -> Optional[ImageResult]:
    sanitized = sanitize_url(value)
    return ImageResult("url", sanitized) if sanitized else None


def _base64(value: Any) -> Optional[ImageResult]:
    return ImageResult("base64", value) if isinstance(value, str) else None


def _from_text(text: str) -> Optional[ImageResult]:
    data_url = parse_data_url(text)
    if data_url:
        return ImageResult("base64", data_url[1])
    match = HTTP_URL_RE.search(text)
    if match:
        return _url(match.group(0))
    return None


def decode_image_result(response: Any) -> Optional[ImageResult]:
    """
    Find the generated image in a chat response.

    Structured locations win over free text, tried in this order:
    data.image_url, data.image_base64, data.outputs[] items,
    message.content[] items. Text found on the way (answer first) is then
    scanned for a data URL or an http(s) URL.

    Returns:
        ImageResult, or None when the response carries no image
    """
    if not isinstance(response, dict):
        return None

    texts: list[str] = []
    if isinstance(response.get("answer"), str):
        texts.append(response["answer"])

    data = response.get("data")
    if isinstance(data, dict):
        found = _url(data.get("image_url")) or _base64(data.get("image_base64"))
        if found:
            return found

        data_outputs = data.get("outputs")
        for output in data_outputs if isinstance(data_outputs, list) else []:
            if not isinstance(output, dict):
                continue
            found = _base64(output.get("image_base64")) or _url(output.get("image_url"))
            if found:
                return found
            if isinstance(output.get("text"), str):
                texts.append(output["text"])

    outputs = response.get("outputs")
    if isinstance(outputs, list):
        for output in outputs:
            if isinstance(output, dict) and isinstance(output.get("text"), str):
                texts.append(output["text"])

    message = response.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, list):
        for item in content:
            if not isinstance(item, dict):
                continue
            if item.get("type") == "image":
                found = _url(item.get("image_url")) or _base64(item.get("image_base64"))
                if found:
                    return found
            nested = item.get("data")
            if isinstance(nested, dict):
                found = (
                    _url(nested.get("url"))
                    or _url(nested.get("image_url"))
                    or _base64(nested.get("image_base64"))
                )
                if found:
                    return found
            if isinstance(item.get("text"), str):
                texts.append(item["text"])

    for text in texts:
        found = _from_text(text)
        if found:
            return found

    return None
