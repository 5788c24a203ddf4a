"""FastAPI dependencies that assemble handlers per request."""

from __future__ import annotations

import json
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from tribes_api.app.common.auth import TribeVerifier, verify_tribe_uuid
from tribes_api.db import Database, SQLDatabase
from tribes_api.handlers.channels import ChannelHandler
from tribes_api.handlers.features import FeatureHandler
from tribes_api.handlers.tribes import TribeHandler
from tribes_api.tribal_core import get_db


def get_database(request: Request, db: Session = Depends(get_db)) -> Database:
    return SQLDatabase(db, deadline=getattr(request.state, "deadline", None))


def get_tribe_verifier() -> TribeVerifier:
    return verify_tribe_uuid


def get_tribe_handler(
    db: Database = Depends(get_database),
    verifier: TribeVerifier = Depends(get_tribe_verifier),
) -> TribeHandler:
    return TribeHandler(db, verify_tribe_uuid=verifier)


def get_channel_handler(db: Database = Depends(get_database)) -> ChannelHandler:
    return ChannelHandler(db)


def get_feature_handler(db: Database = Depends(get_database)) -> FeatureHandler:
    return FeatureHandler(db)


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed JSON body") from exc


__all__ = [
    "ChannelHandler",
    "FeatureHandler",
    "TribeHandler",
    "get_channel_handler",
    "get_database",
    "get_feature_handler",
    "get_tribe_handler",
    "get_tribe_verifier",
    "read_json_body",
]
