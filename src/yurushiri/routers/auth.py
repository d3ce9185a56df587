"""Sign-in, sign-up and sign-out routes"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from yurushiri.auth.dependencies import get_auth_client, get_session_context
from yurushiri.auth.session import SessionContext
from yurushiri.backends.auth_client import AuthClient
from yurushiri.config import config
from yurushiri.errors import AuthError
from yurushiri.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)

MIN_PASSWORD_LENGTH = 6
UNSAFE_NEXT_CHARS = ("\\", "\t", "\r", "\n")


def _safe_next(next_path: Optional[str]) -> str:
    """Only allow same-site relative redirects"""
    if not isinstance(next_path, str) or not next_path.startswith("/"):
        return "/"
    # Browsers read a backslash as a slash and drop tabs and newlines
    if next_path.startswith("//") or any(ch in next_path for ch in UNSAFE_NEXT_CHARS):
        return "/"
    parts = urlsplit(next_path)
    if parts.scheme or parts.netloc:
        return "/"
    return next_path


async def _read_credentials(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _signup_redirect_url(request: Request) -> str:
    if config.get("redirect_url"):
        return config["redirect_url"]
    base_url = config.get("app_base_url") or str(request.base_url)
    return base_url.rstrip("/") + "/"


@router.get("/signin")
async def signin_page(
    request: Request,
    next: Optional[str] = None,
    context: SessionContext = Depends(get_session_context),
):
    if context.is_authenticated:
        return RedirectResponse(_safe_next(next), status_code=303)
    return templates.TemplateResponse(
        request, "signin.html", {"user": None, "next": _safe_next(next)}
    )


@router.post("/signin")
async def signin(
    request: Request,
    context: SessionContext = Depends(get_session_context),
    auth_client: AuthClient = Depends(get_auth_client),
):
    body = await _read_credentials(request)
    email = str(body.get("email") or "").strip()
    password = str(body.get("password") or "")

    if not email or not password:
        return JSONResponse(
            {"success": False, "error": "メールアドレスとパスワードを入力してください"},
            status_code=400,
        )

    try:
        result = await auth_client.sign_in(email, password)
    except AuthError as e:
        logger.warning(f"Sign-in failed for {email}: {e}")
        if e.status_code is None:
            return JSONResponse(
                {"success": False, "error": "予期しないエラーが発生しました。"},
                status_code=502,
            )
        return JSONResponse(
            {
                "success": False,
                "error": "ログインに失敗しました。メールアドレスとパスワードを確認してください。",
            },
            status_code=401,
        )

    context.sign_in(result.user, result.tokens)
    return {"success": True, "redirect": _safe_next(body.get("next"))}


@router.get("/signup")
async def signup_page(
    request: Request, context: SessionContext = Depends(get_session_context)
):
    if context.is_authenticated:
        return RedirectResponse("/", status_code=303)
    return templates.TemplateResponse(request, "signup.html", {"user": None})


@router.post("/signup")
async def signup(
    request: Request,
    context: SessionContext = Depends(get_session_context),
    auth_client: AuthClient = Depends(get_auth_client),
):
    body = await _read_credentials(request)
    email = str(body.get("email") or "").strip()
    password = str(body.get("password") or "")
    confirm_password = str(body.get("confirmPassword") or "")

    error = None
    if not email or not password or not confirm_password:
        error = "すべての項目を入力してください"
    elif password != confirm_password:
        error = "パスワードが一致しません"
    elif len(password) < MIN_PASSWORD_LENGTH:
        error = "パスワードは6文字以上で入力してください"
    if error:
        return JSONResponse({"success": False, "error": error}, status_code=400)

    try:
        result = await auth_client.sign_up(
            email, password, redirect_to=_signup_redirect_url(request)
        )
    except AuthError as e:
        logger.warning(f"Sign-up failed for {email}: {e}")
        return JSONResponse(
            {
                "success": False,
                "error": "アカウント作成に失敗しました。入力内容を確認してください。",
            },
            status_code=400 if e.status_code else 502,
        )

    # Projects without e-mail confirmation hand back a session right away
    if result.user and result.tokens:
        context.sign_in(result.user, result.tokens)
        return {"success": True, "redirect": "/"}
    return {"success": True, "redirect": "/auth/signup-success"}


@router.get("/auth/signup-success")
async def signup_success(request: Request):
    return templates.TemplateResponse(request, "signup_success.html", {"user": None})


@router.post("/signout")
async def signout(
    context: SessionContext = Depends(get_session_context),
    auth_client: AuthClient = Depends(get_auth_client),
):
    if context.access_token:
        await auth_client.sign_out(context.access_token)
    context.sign_out()
    return RedirectResponse("/", status_code=303)
