"""
Tribe resource handler.

Ownership rules live here, not in the gateway: every write resolves the
owner from the tribe uuid's signed claim and compares it with the caller
and with the stored record. Reads never fail on a missing tribe; they hand
back the empty record and let the caller check ``uuid``.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime
from typing import Any, Dict, List
from urllib.parse import urlencode

from fastapi import HTTPException, status
from pydantic import ValidationError

from tribes_api.app.common.auth import TribeVerificationError, TribeVerifier, verify_tribe_uuid
from tribes_api.db import Database
from tribes_api.schemas import TribeIn, TribeRecord

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


class TribeHandler:
    def __init__(self, db: Database, verify_tribe_uuid: TribeVerifier = verify_tribe_uuid):
        self.db = db
        self.verify_tribe_uuid = verify_tribe_uuid

    # --------------------------
    # Reads
    # --------------------------
    def get_tribes_by_owner(self, pubkey: str, include_all: bool = False) -> List[TribeRecord]:
        if include_all:
            return self.db.get_all_tribes_by_owner(pubkey)
        return self.db.get_tribes_by_owner(pubkey)

    def get_tribe(self, uuid: str) -> Dict[str, Any]:
        tribe = self.db.get_tribe(uuid)
        return self._with_channels(tribe)

    def get_tribes_by_app_url(self, app_url: str) -> List[TribeRecord]:
        return self.db.get_tribes_by_app_url(app_url)

    def get_tribe_by_unique_name(self, unique_name: str) -> Dict[str, Any]:
        tribe = self.db.get_tribe_by_unique_name(unique_name)
        return self._with_channels(tribe)

    def tribe_join_link(self, uuid: str, host: str) -> str:
        tribe = self.db.get_tribe(uuid)
        if not tribe.uuid or tribe.deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tribe not found")
        return "sphinx.chat://?" + urlencode({"action": "tribe", "uuid": tribe.uuid, "host": host})

    def _with_channels(self, tribe: TribeRecord) -> Dict[str, Any]:
        body = tribe.model_dump(mode="json")
        if tribe.uuid:
            channels = self.db.get_channels_by_tribe(tribe.uuid)
            body["channels"] = [c.model_dump(mode="json") for c in channels]
        else:
            body["channels"] = []
        return body

    # --------------------------
    # Writes
    # --------------------------
    def create_or_edit_tribe(self, payload: Any, caller_pub_key: str) -> TribeRecord:
        if not isinstance(payload, dict):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body must be a JSON object")
        try:
            incoming = TribeIn.model_validate(payload)
        except ValidationError as exc:
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=reason) from exc
        if not incoming.uuid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="uuid is required")

        owner = self._verified_owner(incoming.uuid)
        if caller_pub_key != owner:
            logger.info("tribe edit rejected: caller does not match uuid claim")
            raise _unauthorized()

        now = datetime.utcnow()
        changes = {
            k: v
            for k, v in incoming.model_dump(exclude_unset=True, exclude={"uuid"}).items()
            if v is not None
        }
        existing = self.db.get_tribe(incoming.uuid)
        if existing.uuid:
            if existing.owner_pub_key != owner:
                logger.info("tribe edit rejected: %s is owned by another key", incoming.uuid)
                raise _unauthorized()
            tribe = existing.model_copy(update=changes)
        else:
            tribe = TribeRecord(uuid=incoming.uuid, **changes)
            tribe.created = now
            tribe.unique_name = self.tribe_unique_name_from_name(tribe.name)

        tribe.owner_pub_key = owner
        tribe.updated = now
        tribe.last_active = int(time.time())
        saved = self.db.create_or_edit_tribe(tribe)
        logger.info("tribe %s saved", saved.uuid)
        return saved

    def delete_tribe(self, uuid: str, caller_pub_key: str) -> bool:
        existing = self._owned_tribe(uuid, caller_pub_key)
        if existing.deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tribe not found")
        self.db.update_tribe(uuid, {"deleted": True})
        logger.info("tribe %s deleted", uuid)
        return True

    def set_tribe_preview(self, uuid: str, preview: str, caller_pub_key: str) -> bool:
        self._owned_tribe(uuid, caller_pub_key)
        self.db.update_tribe(uuid, {"preview": preview})
        return True

    def put_tribe_activity(self, uuid: str, caller_pub_key: str) -> bool:
        self._owned_tribe(uuid, caller_pub_key)
        self.db.update_tribe(uuid, {"last_active": int(time.time())})
        return True

    # --------------------------
    # Helpers
    # --------------------------
    def _verified_owner(self, uuid: str) -> str:
        try:
            return self.verify_tribe_uuid(uuid, False)
        except TribeVerificationError as exc:
            logger.info("tribe uuid verification failed: %s", exc)
            raise _unauthorized() from exc

    def _owned_tribe(self, uuid: str, caller_pub_key: str) -> TribeRecord:
        """Resolve ``uuid`` to a stored tribe owned by the caller, or raise."""
        if not uuid:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tribe not found")
        owner = self._verified_owner(uuid)
        if caller_pub_key != owner:
            raise _unauthorized()
        existing = self.db.get_tribe(uuid)
        if not existing.uuid:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tribe not found")
        if existing.owner_pub_key != caller_pub_key:
            raise _unauthorized()
        return existing

    def tribe_unique_name_from_name(self, name: str) -> str:
        path = _NON_ALNUM.sub("", "".join(name.split()).lower())
        if not path:
            return ""
        n = 0
        while True:
            candidate = f"{path}{n}" if n > 0 else path
            if not self.db.get_tribe_by_unique_name(candidate).uuid:
                return candidate
            n += 1
