"""AI-proxy endpoints used by the event form scripts"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from yurushiri.backends.dify_client import (
    DEFAULT_CHAT_TIMEOUT,
    MAX_CHAT_TIMEOUT,
    DifyClient,
    clamp_chat_timeout,
)
from yurushiri.errors import DifyError
from yurushiri.services.dify_service import get_dify_client
from yurushiri.services.field_extractor import extract_from_response
from yurushiri.services.image_result import (
    decode_image_result,
    file_name_from_url,
    guess_mime_type,
    parse_data_url,
    sanitize_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dify", include_in_schema=False)

IMAGE_MODE = "image_generation"
CLEANUP_INSTRUCTION = (
    "文字を全て消してテクスチャだけ残す。"
    "文字のバックグラウンドになっているようなところもけして幾何学模様やテーマなどのところを一様に出力。"
)

EVENT_FIELDS_SCHEMA = (
    '{"title": string, "description": string, "date": "YYYY-MM-DD", "time": "HH:MM", '
    '"location": string, "category": string, "maxAttendees": number, '
    '"isPublic": boolean, "imageUrl": string}'
)
TEXT_AUTOFILL_PROMPT = (
    "次のテキストを解析し、イベントフォームに必要な情報をできるだけ詳しく抽出してください。"
    "description には日付・開始時刻・場所・参加条件・連絡先など重要な要素をすべて日本語でまとめ、"
    "他フィールドと重複しても構いません。結果は以下のキーを持つ JSON オブジェクトで返してください: "
    f"{EVENT_FIELDS_SCHEMA}.\n入力テキスト:\n\n"
)
FILE_AUTOFILL_PROMPT = (
    "アップロードされた資料からイベント情報をできるだけ詳細に抽出してください。"
    "description には開催日時・会場・参加条件・主催者や特記事項など重要な情報をすべて含め、"
    "他のフィールドと内容が重なっても構いません。以下のキーを持つ JSON オブジェクトを返してください: "
    f"{EVENT_FIELDS_SCHEMA}."
)
AUTOFILL_APPLIED_MESSAGE = "フォームに自動入力しました。内容をご確認ください。"
AUTOFILL_EMPTY_MESSAGE = (
    "AIからの応答は受け取りましたが、フォームに適用できる項目が見つかりませんでした。"
)
IMAGE_FALLBACK_WARNING = "画像から文字のみを除去する処理に失敗しました。元の画像をそのまま使用します。"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _infer_file_type(mime_type: Optional[str]) -> str:
    if mime_type and mime_type.startswith("image/"):
        return "image"
    return "document"


def _normalize_files(files: Any) -> Optional[list[dict]]:
    """Keep only file references with string type and transfer_method"""
    if not isinstance(files, list):
        return None
    return [
        item
        for item in files
        if isinstance(item, dict)
        and isinstance(item.get("type"), str)
        and isinstance(item.get("transfer_method"), str)
    ]


async def _read_upload(form, field: str) -> Optional[UploadFile]:
    entry = form.get(field)
    return entry if isinstance(entry, UploadFile) else None


@router.post("/chat")
async def chat(request: Request, dify: DifyClient = Depends(get_dify_client)):
    """Relay one blocking chat message and return the upstream JSON as-is"""
    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON payload", 400)

    if not isinstance(body, dict):
        body = {}

    query = body.get("query")
    if not isinstance(query, str) or not query.strip():
        return _error("'query' must be a non-empty string", 400)

    inputs = body.get("inputs")
    conversation_id = body.get("conversationId")
    user = body.get("user")

    try:
        response = await dify.send_chat_message(
            query=query,
            inputs=inputs if isinstance(inputs, dict) else None,
            conversation_id=conversation_id if isinstance(conversation_id, str) else None,
            user=user if isinstance(user, str) else None,
            files=_normalize_files(body.get("files")),
            response_mode="blocking",
            timeout=clamp_chat_timeout(body.get("timeoutMs")),
        )
    except DifyError as e:
        logger.error(f"Failed to complete Dify chat request: {e}")
        return _error(str(e), 500)

    return JSONResponse(response)


@router.post("/files")
async def upload_file(request: Request, dify: DifyClient = Depends(get_dify_client)):
    """Forward one uploaded file and return a chat file reference"""
    try:
        form = await request.form()
    except Exception as e:
        logger.error(f"Failed to parse Dify file upload request: {e}")
        return _error("Failed to read upload payload", 400)

    upload = await _read_upload(form, "file")
    if upload is None:
        return _error("File is required", 400)

    content = await upload.read()
    mime_type = upload.content_type or "application/octet-stream"
    file_name = upload.filename or "upload.bin"

    try:
        upload_file_id = await dify.upload_base64_file(
            base64.b64encode(content).decode("ascii"), file_name, mime_type
        )
    except DifyError as e:
        logger.error(f"Failed to upload file to Dify: {e}")
        return _error(str(e), 500)

    return {
        "file": {
            "type": _infer_file_type(mime_type),
            "transfer_method": "local_file",
            "upload_file_id": upload_file_id,
        }
    }


@dataclass
class SourceImage:
    """The image to clean up, as received from the browser"""

    mime_type: str
    file_name: str
    base64: Optional[str] = None
    remote_url: Optional[str] = None


async def _source_from_form(form) -> Optional[SourceImage]:
    upload = await _read_upload(form, "image")
    if upload is None:
        return None

    content = await upload.read()
    name_field = form.get("fileName")
    if isinstance(name_field, str) and name_field.strip():
        file_name = name_field
    else:
        file_name = upload.filename or "image.png"

    return SourceImage(
        base64=base64.b64encode(content).decode("ascii"),
        mime_type=upload.content_type or guess_mime_type(file_name),
        file_name=file_name,
    )


def _source_from_json(body: Any) -> Optional[SourceImage]:
    if not isinstance(body, dict):
        return None

    raw_base64 = body.get("imageBase64")
    has_base64 = isinstance(raw_base64, str) and bool(raw_base64.strip())
    remote_url = sanitize_url(body.get("imageUrl"))
    if not has_base64 and not remote_url:
        return None

    data_url = parse_data_url(raw_base64) if has_base64 else None
    image_base64 = data_url[1] if data_url else (raw_base64 if has_base64 else None)

    raw_name = body.get("fileName")
    if isinstance(raw_name, str) and raw_name.strip():
        file_name = raw_name
    else:
        file_name = file_name_from_url(remote_url)

    return SourceImage(
        base64=image_base64,
        mime_type=data_url[0] if data_url else guess_mime_type(file_name),
        file_name=file_name,
        remote_url=remote_url,
    )


async def _fetch_remote_source(dify: DifyClient, source: SourceImage) -> None:
    """Best effort: inline a remote source image as base64"""
    try:
        content, content_type = await dify.download(source.remote_url)
    except DifyError as e:
        logger.error(f"Failed to fetch source image from remote URL: {e}")
        return
    source.base64 = base64.b64encode(content).decode("ascii")
    if content_type:
        source.mime_type = content_type
    source.file_name = file_name_from_url(source.remote_url)


async def _transform_image(dify: DifyClient, source: SourceImage) -> dict:
    if source.remote_url:
        files = [{"type": "image", "transfer_method": "remote_url", "url": source.remote_url}]
    else:
        upload_file_id = await dify.upload_base64_file(
            source.base64, source.file_name, source.mime_type
        )
        files = [
            {"type": "image", "transfer_method": "local_file", "upload_file_id": upload_file_id}
        ]

    inputs: dict[str, Any] = {
        "mode": IMAGE_MODE,
        "source_image_mime": source.mime_type,
        "source_file_name": source.file_name,
    }
    if source.base64:
        inputs["source_image_base64"] = source.base64
    if source.remote_url:
        inputs["source_image_url"] = source.remote_url

    response = await dify.send_chat_message(
        query=CLEANUP_INSTRUCTION,
        inputs=inputs,
        files=files,
        response_mode="blocking",
        timeout=DEFAULT_CHAT_TIMEOUT,
    )

    result = decode_image_result(response)
    if result is None:
        raise DifyError("Dify image generation response did not contain image data")

    image_base64 = result.value if result.kind == "base64" else None
    image_url = result.value if result.kind == "url" else None
    mime_type = source.mime_type

    if image_url:
        try:
            content, content_type = await dify.download(image_url, authorized=True)
            image_base64 = base64.b64encode(content).decode("ascii")
            image_url = None
            if content_type:
                mime_type = content_type
        except DifyError as e:
            logger.error(f"Failed to fetch generated image from Dify URL: {e}")

    return {
        "imageBase64": image_base64,
        "imageUrl": image_url,
        "mimeType": mime_type if image_base64 else None,
        "raw": response,
    }


@router.post("/image-generation")
async def image_generation(request: Request, dify: DifyClient = Depends(get_dify_client)):
    """
    Remove lettering from an event cover image, keeping its background texture.

    Never fails once an image has been received: any error returns the
    original image with a warning so the organizer can carry on.
    """
    content_type = request.headers.get("content-type", "")
    try:
        if "multipart/form-data" in content_type:
            source = await _source_from_form(await request.form())
        else:
            source = _source_from_json(await request.json())
    except Exception as e:
        logger.error(f"Failed to parse image generation request payload: {e}")
        return _error("画像データの読み込みに失敗しました", 400)

    if source is None:
        return _error("画像データが取得できませんでした", 400)

    if source.remote_url and not source.base64:
        await _fetch_remote_source(dify, source)

    try:
        return await _transform_image(dify, source)
    except (DifyError, binascii.Error, ValueError) as e:
        logger.warning(f"Image cleanup failed, returning the original image: {e}")
        return {
            "imageBase64": source.base64,
            "imageUrl": None if source.base64 else source.remote_url,
            "mimeType": source.mime_type,
            "raw": None,
            "warning": IMAGE_FALLBACK_WARNING,
        }


@router.post("/autofill")
async def autofill(request: Request, dify: DifyClient = Depends(get_dify_client)):
    """
    Ask the AI to fill the event form from pasted text or an uploaded document.

    Returns the extracted fields; the page applies them over the current values.
    """
    content_type = request.headers.get("content-type", "")
    files = None
    inputs = None

    try:
        if "multipart/form-data" in content_type:
            upload = await _read_upload(await request.form(), "file")
            if upload is None:
                return _error("File is required", 400)
            content = await upload.read()
            mime_type = upload.content_type or "application/octet-stream"
            upload_file_id = await dify.upload_file(
                content, upload.filename or "upload.bin", mime_type
            )
            files = [
                {
                    "type": _infer_file_type(mime_type),
                    "transfer_method": "local_file",
                    "upload_file_id": upload_file_id,
                }
            ]
            query = FILE_AUTOFILL_PROMPT
            timeout = MAX_CHAT_TIMEOUT
        else:
            try:
                body = await request.json()
            except ValueError:
                return _error("Invalid JSON payload", 400)
            text = body.get("text") if isinstance(body, dict) else None
            if not isinstance(text, str) or not text.strip():
                return _error("テキストを入力してください。", 400)
            current_fields = body.get("currentFields")
            if isinstance(current_fields, dict):
                inputs = {"currentFields": current_fields}
            query = TEXT_AUTOFILL_PROMPT + text.strip()
            timeout = DEFAULT_CHAT_TIMEOUT

        response = await dify.send_chat_message(
            query=query,
            inputs=inputs,
            files=files,
            response_mode="blocking",
            timeout=timeout,
        )
    except DifyError as e:
        logger.error(f"Failed to run AI autofill: {e}")
        return _error(str(e), 502)

    fields = extract_from_response(response)
    conversation_id = response.get("conversation_id") if isinstance(response, dict) else None
    return {
        "fields": fields.to_json() if fields else {},
        "applied": fields is not None,
        "conversationId": conversation_id if isinstance(conversation_id, str) else None,
        "message": AUTOFILL_APPLIED_MESSAGE if fields else AUTOFILL_EMPTY_MESSAGE,
    }
