"""Account and session endpoints backed by :class:`AuthService`."""

from __future__ import annotations

from flask import Blueprint, request

from authflow.api.deps import (
    REFRESH_COOKIE,
    api_response,
    build_auth_service,
    clear_session_cookies,
    current_account_id,
    require_auth,
    set_session_cookies,
    stage_upload,
    timing,
)
from authflow.schemas import (
    AccountSchema,
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    TokenPairSchema,
)
from authflow.services.auth.dto import LoginIn, RefreshIn, RegisterIn
from authflow.services.media.intake import remove_local_file

bp = Blueprint("users", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
account_schema = AccountSchema()
token_schema = TokenPairSchema()


@bp.post("/register")
@timing
def register():
    """Register an account from multipart fields plus ``avatar``/``coverImage`` files."""

    avatar_path = cover_path = None
    try:
        data = register_schema.load(request.form.to_dict())
        avatar_path = stage_upload(request.files.get("avatar"))
        cover_path = stage_upload(request.files.get("coverImage"))
    except Exception:
        remove_local_file(avatar_path)
        remove_local_file(cover_path)
        raise

    service = build_auth_service()
    account = service.register(
        RegisterIn(
            full_name=data["full_name"],
            email=data["email"],
            username=data["username"],
            password=data["password"],
            avatar_path=avatar_path,
            cover_image_path=cover_path,
        )
    )
    return api_response(
        account_schema.dump(account), "User registered Successfully", status=201
    )


@bp.post("/login")
@timing
def login():
    """Authenticate credentials, set session cookies and return the token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    service = build_auth_service()
    result = service.login(
        LoginIn(password=data["password"], username=data["username"], email=data["email"])
    )
    body = {"user": account_schema.dump(result.user), **token_schema.dump(result.tokens)}
    response = api_response(body, "User logged In Successfully")
    set_session_cookies(
        response,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )
    return response


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the stored refresh token and clear both session cookies."""

    service = build_auth_service()
    service.logout(current_account_id())
    response = api_response({}, "User logged Out")
    clear_session_cookies(response)
    return response


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate the refresh token (cookie first, then JSON body)."""

    incoming = request.cookies.get(REFRESH_COOKIE)
    if not incoming:
        incoming = refresh_schema.load(request.get_json(silent=True) or {})["refresh_token"]
    service = build_auth_service()
    tokens = service.refresh(RefreshIn(refresh_token=incoming))
    response = api_response(token_schema.dump(tokens), "Access token refreshed")
    set_session_cookies(
        response,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
    return response


@bp.get("/current-user")
@require_auth
@timing
def current_user():
    """Return the authenticated account."""

    service = build_auth_service()
    account = service.current_account(current_account_id())
    return api_response(account_schema.dump(account), "User fetched successfully")
