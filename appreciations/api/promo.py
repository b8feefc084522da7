"""
Promo code API.

- POST   /api/promo/redeem                   Redeem a code (any signed-in user)
- GET    /api/admin/promo-codes              List codes, newest first
- POST   /api/admin/promo-codes              Create a code
- PATCH  /api/admin/promo-codes/{id}         Update a code
- DELETE /api/admin/promo-codes/{id}         Delete a code
- POST   /api/admin/promo-codes/batch        Generate single-use codes
- GET    /api/admin/promo-codes/stats        Redemption statistics

Redemption answers with a RedemptionResponse body on every status code so
the client can always show `message`.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from appreciations.core.auth import extract_bearer_token, get_current_user, require_admin
from appreciations.core.errors import AuthRequiredError
from appreciations.features.promo import admin_service
from appreciations.features.promo.service import auth_required, redeem_promo_code
from appreciations.models.profile import AuthenticatedUser
from appreciations.models.promo import (
    PromoBatchRequest,
    PromoCodeCreate,
    PromoCodeUpdate,
)

logger = logging.getLogger("appreciations")

router = APIRouter(prefix="/api/promo", tags=["promo"])
admin_router = APIRouter(prefix="/api/admin/promo-codes", tags=["promo-admin"])


def _respond(result) -> JSONResponse:
    return JSONResponse(status_code=result.http_status, content=result.to_wire())


@router.post("/redeem")
async def redeem(request: Request):
    if not extract_bearer_token(request):
        return _respond(auth_required())
    try:
        user = await get_current_user(request)
    except AuthRequiredError:
        return _respond(auth_required("Session invalide. Veuillez vous reconnecter."))

    try:
        payload = await request.json()
    except ValueError:
        payload = None
    raw_code = payload.get("code") if isinstance(payload, dict) else None

    return _respond(redeem_promo_code(user.id, raw_code))


@admin_router.get("")
def list_codes(admin: AuthenticatedUser = Depends(require_admin)):
    codes = admin_service.list_promo_codes()
    return {"codes": [c.model_dump(mode="json") for c in codes]}


@admin_router.post("", status_code=201)
def create_code(body: PromoCodeCreate, admin: AuthenticatedUser = Depends(require_admin)):
    code = admin_service.create_promo_code(body)
    logger.info("promo.admin_create", extra={"user_id": admin.id, "event_type": "promo_admin"})
    return {"code": code.model_dump(mode="json")}


@admin_router.get("/stats")
def stats(admin: AuthenticatedUser = Depends(require_admin)):
    return {"stats": admin_service.get_stats().model_dump(by_alias=True)}


@admin_router.post("/batch")
def generate_batch(body: PromoBatchRequest, admin: AuthenticatedUser = Depends(require_admin)):
    return admin_service.generate_batch(body).model_dump()


@admin_router.patch("/{promo_id}")
def update_code(promo_id: int, body: PromoCodeUpdate, admin: AuthenticatedUser = Depends(require_admin)):
    code = admin_service.update_promo_code(promo_id, body)
    return {"code": code.model_dump(mode="json")}


@admin_router.delete("/{promo_id}")
def delete_code(promo_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    admin_service.delete_promo_code(promo_id)
    return {"success": True}
