from __future__ import annotations

from io import BytesIO
from typing import Any, List, Optional

import qrcode
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from tribes_api.app.common.auth import pub_key_context
from tribes_api.config import TRIBES_HOST
from tribes_api.handlers import TribeHandler, get_tribe_handler, read_json_body
from tribes_api.schemas import TribeRecord

router = APIRouter(tags=["tribes"])


def _is_true(value: Optional[str]) -> bool:
    return (value or "").lower() == "true"


# --------------------------
# Reads
# --------------------------
# app urls may carry slashes once decoded
@router.get("/tribes/app_url/{app_url:path}", response_model=List[TribeRecord])
def get_tribes_by_app_url(app_url: str, th: TribeHandler = Depends(get_tribe_handler)):
    return th.get_tribes_by_app_url(app_url)


@router.get("/tribes/{key}")
def get_tribe_or_owner_tribes(
    key: str,
    include_all: Optional[str] = Query(None, alias="all", description="true: include deleted tribes"),
    th: TribeHandler = Depends(get_tribe_handler),
):
    # an `all` flag marks the key as an owner pubkey, otherwise it is a tribe uuid
    if include_all is not None:
        return th.get_tribes_by_owner(key, include_all=_is_true(include_all))
    return th.get_tribe(key)


@router.get("/tribes_by_owner/{pubkey}", response_model=List[TribeRecord])
def get_tribes_by_owner(
    pubkey: str,
    include_all: Optional[str] = Query(None, alias="all"),
    th: TribeHandler = Depends(get_tribe_handler),
):
    return th.get_tribes_by_owner(pubkey, include_all=_is_true(include_all))


@router.get("/tribe_by_un/{un}")
def get_tribe_by_unique_name(un: str, th: TribeHandler = Depends(get_tribe_handler)):
    return th.get_tribe_by_unique_name(un)


@router.get("/tribes/{uuid}/qr.png")
def tribe_join_qr(uuid: str, th: TribeHandler = Depends(get_tribe_handler)):
    """PNG QR code a Sphinx client scans to join the tribe."""
    img = qrcode.make(th.tribe_join_link(uuid, TRIBES_HOST))
    buf = BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


# --------------------------
# Writes (authenticated)
# --------------------------
@router.put("/tribe", response_model=TribeRecord)
def create_or_edit_tribe(
    pubkey: str = Depends(pub_key_context),
    payload: Any = Depends(read_json_body),
    th: TribeHandler = Depends(get_tribe_handler),
):
    return th.create_or_edit_tribe(payload, pubkey)


@router.delete("/tribe/{uuid}")
def delete_tribe(
    uuid: str,
    pubkey: str = Depends(pub_key_context),
    th: TribeHandler = Depends(get_tribe_handler),
):
    return th.delete_tribe(uuid, pubkey)


@router.put("/tribepreview/{uuid}")
def set_tribe_preview(
    uuid: str,
    preview: str = Query("", description="preview server url or state"),
    pubkey: str = Depends(pub_key_context),
    th: TribeHandler = Depends(get_tribe_handler),
):
    return th.set_tribe_preview(uuid, preview, pubkey)


@router.put("/tribeactivity/{uuid}")
def put_tribe_activity(
    uuid: str,
    pubkey: str = Depends(pub_key_context),
    th: TribeHandler = Depends(get_tribe_handler),
):
    return th.put_tribe_activity(uuid, pubkey)
