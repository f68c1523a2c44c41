"""Legacy-account migration endpoints (public, gated by a provider token)."""

from __future__ import annotations

from flask import Blueprint, request

from wallet_auth.api.deps import json_response, request_metadata, timing
from wallet_auth.api.v1.auth import authenticated_response
from wallet_auth.core.wiring import get_components
from wallet_auth.schemas import CheckStatusSchema, MigrationStatusSchema, SetupPasswordSchema
from wallet_auth.services._shared.errors import ServiceError

bp = Blueprint("migration", __name__)

check_status_schema = CheckStatusSchema()
setup_password_schema = SetupPasswordSchema()
status_schema = MigrationStatusSchema()


@bp.post("/check-status")
@timing
def check_status():
    """Report whether the legacy identity must still set a local password."""

    data = check_status_schema.load(request.get_json(silent=True) or {})
    service = get_components().auth
    try:
        status = service.migration_status(data["provider_token"])
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response({"data": status_schema.dump(status)})


@bp.post("/setup-password")
@bp.post("/migrate", endpoint="migrate")
@timing
def setup_password():
    """Set the first local password for a legacy account and sign it in."""

    data = setup_password_schema.load(request.get_json(silent=True) or {})
    service = get_components().auth
    try:
        result = service.setup_password(data["provider_token"], data["password"], request_metadata())
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return authenticated_response(result)
