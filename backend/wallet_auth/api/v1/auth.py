"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, request

from wallet_auth.api.deps import (
    clear_refresh_cookie,
    current_claims,
    json_response,
    read_refresh_secret,
    request_metadata,
    require_auth,
    set_refresh_cookie,
    timing,
)
from wallet_auth.core.wiring import get_components
from wallet_auth.schemas import (
    AccountSchema,
    AuthenticatedSchema,
    LoginSchema,
    NeedsMigrationSchema,
    ProviderTokenSchema,
    RefreshSchema,
    RegisterSchema,
)
from wallet_auth.services._shared.errors import ServiceError
from wallet_auth.services.auth.dto import AuthenticatedOut, LoginIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
provider_token_schema = ProviderTokenSchema()
refresh_schema = RefreshSchema()
account_schema = AccountSchema()
authenticated_schema = AuthenticatedSchema()
needs_migration_schema = NeedsMigrationSchema()


def authenticated_response(result: AuthenticatedOut, *, status: int = 200) -> Response:
    """Serialize a session; the refresh secret goes to the cookie only by default."""

    body = authenticated_schema.dump(result)
    if current_app.config.get("REFRESH_TOKEN_IN_BODY", False):
        body["refresh_token"] = result.refresh_secret
    response = json_response({"data": body}, status=status)
    return set_refresh_cookie(response, result.refresh_secret, result.refresh_expires_at)


@bp.post("/register")
@timing
def register():
    """Register a new locally-authenticable account and sign it in."""

    payload = register_schema.load(request.get_json(silent=True) or {})
    service = get_components().auth
    try:
        result = service.register(
            RegisterIn(
                email=payload["email"],
                secret=payload["password"],
                first_name=payload["first_name"],
                last_name=payload["last_name"],
            ),
            request_metadata(),
        )
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return authenticated_response(result, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate with a password, or report that a legacy account must migrate."""

    data = login_schema.load(request.get_json(silent=True) or {})
    service = get_components().auth
    try:
        result = service.login(
            LoginIn.from_fields(data["email"], data["password"], data["provider_token"]),
            request_metadata(),
        )
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    if isinstance(result, AuthenticatedOut):
        return authenticated_response(result)
    return json_response({"needs_migration": True, "data": needs_migration_schema.dump(result)})


@bp.post("/legacy-login")
@timing
def legacy_login():
    """Sign in with a legacy provider token, provisioning the account if allowed."""

    data = provider_token_schema.load(request.get_json(silent=True) or {})
    service = get_components().auth
    try:
        result = service.legacy_login(data["provider_token"], request_metadata())
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return authenticated_response(result)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh credential and return a new access token."""

    body = refresh_schema.load(request.get_json(silent=True) or {})
    service = get_components().auth
    try:
        result = service.refresh(read_refresh_secret(body), request_metadata())
    except ServiceError as exc:
        error = service.translate_exceptions(exc)
        # A dead credential must not linger in the browser
        response = current_app.handle_user_exception(error)
        return clear_refresh_cookie(current_app.make_response(response))
    return authenticated_response(result)


@bp.post("/logout")
@timing
def logout():
    """Revoke the presented refresh credential; always succeeds."""

    body = refresh_schema.load(request.get_json(silent=True) or {})
    get_components().auth.logout(read_refresh_secret(body), request_metadata())
    return clear_refresh_cookie(json_response({"data": {"logged_out": True}}))


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the account behind the presented access token."""

    service = get_components().auth
    try:
        account = service.get_account(current_claims().account_id)
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response({"data": account_schema.dump(account)})
