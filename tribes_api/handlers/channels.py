from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException, status

from tribes_api.db import Database
from tribes_api.schemas import ChannelIn, ChannelRecord

logger = logging.getLogger(__name__)


class ChannelHandler:
    def __init__(self, db: Database):
        self.db = db

    def create_channel(self, payload: ChannelIn, caller_pub_key: str) -> ChannelRecord:
        tribe = self.db.get_tribe(payload.tribe_uuid)
        if not tribe.uuid or tribe.deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tribe not found")
        if tribe.owner_pub_key != caller_pub_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        channel = self.db.create_channel(
            ChannelRecord(tribe_uuid=tribe.uuid, name=payload.name, created=datetime.utcnow())
        )
        logger.info("channel %s created in tribe %s", channel.id, tribe.uuid)
        return channel

    def delete_channel(self, channel_id: int, caller_pub_key: str) -> bool:
        channel = self.db.get_channel(channel_id)
        if not channel.id or channel.deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")
        tribe = self.db.get_tribe(channel.tribe_uuid)
        if tribe.owner_pub_key != caller_pub_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        self.db.update_channel(channel_id, {"deleted": True})
        return True
