from __future__ import annotations

import logging
import uuid as uuidlib
from datetime import datetime
from typing import List

from fastapi import HTTPException, status

from tribes_api.db import Database
from tribes_api.schemas import FeatureIn, FeatureRecord

logger = logging.getLogger(__name__)


class FeatureHandler:
    def __init__(self, db: Database):
        self.db = db

    def create_or_edit_feature(self, payload: FeatureIn, caller_pub_key: str) -> FeatureRecord:
        now = datetime.utcnow()
        changes = {
            k: v
            for k, v in payload.model_dump(exclude_unset=True, exclude={"uuid"}).items()
            if v is not None
        }

        existing = self.db.get_feature_by_uuid(payload.uuid) if payload.uuid else FeatureRecord()
        if existing.uuid:
            feature = existing.model_copy(update=changes)
        else:
            if not changes.get("workspace_uuid"):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="workspace_uuid is required")
            feature = FeatureRecord(uuid=payload.uuid or uuidlib.uuid4().hex, **changes)
            feature.created = now
            feature.created_by = caller_pub_key

        feature.updated = now
        feature.updated_by = caller_pub_key
        return self.db.create_or_edit_feature(feature)

    def get_feature(self, uuid: str) -> FeatureRecord:
        feature = self.db.get_feature_by_uuid(uuid)
        if not feature.uuid:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feature not found")
        return feature

    def get_features_for_workspace(self, workspace_uuid: str) -> List[FeatureRecord]:
        return self.db.get_features_by_workspace_uuid(workspace_uuid)

    def delete_feature(self, uuid: str) -> bool:
        if not self.db.delete_feature_by_uuid(uuid):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feature not found")
        logger.info("feature %s deleted", uuid)
        return True
