"""
Persistence gateway.

``Database`` is the storage interface the handlers talk to. It knows nothing
about owners or permissions: it stores and fetches records keyed by uuid,
owner pubkey, app url or unique name. Lookups that miss return the zero
record (empty ``uuid`` / ``id == 0``) instead of raising.

``SQLDatabase`` implements it on a SQLAlchemy session.
"""

from __future__ import annotations

import abc
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tribes_api.schemas import ChannelRecord, FeatureRecord, TribeRecord
from tribes_api.tribal_core import Channel, Feature, Tribe

logger = logging.getLogger(__name__)


class RequestDeadlineExceeded(Exception):
    """The request ran past its deadline before the write was committed."""


class Database(abc.ABC):
    # ---- tribes
    @abc.abstractmethod
    def get_tribe(self, uuid: str) -> TribeRecord: ...

    @abc.abstractmethod
    def get_all_tribes_by_owner(self, pubkey: str) -> List[TribeRecord]: ...

    @abc.abstractmethod
    def get_tribes_by_owner(self, pubkey: str) -> List[TribeRecord]: ...

    @abc.abstractmethod
    def get_tribes_by_app_url(self, app_url: str) -> List[TribeRecord]: ...

    @abc.abstractmethod
    def get_tribe_by_unique_name(self, unique_name: str) -> TribeRecord: ...

    @abc.abstractmethod
    def create_or_edit_tribe(self, tribe: TribeRecord) -> TribeRecord: ...

    @abc.abstractmethod
    def update_tribe(self, uuid: str, fields: Dict[str, Any]) -> bool: ...

    # ---- channels
    @abc.abstractmethod
    def get_channels_by_tribe(self, tribe_uuid: str) -> List[ChannelRecord]: ...

    @abc.abstractmethod
    def get_channel(self, channel_id: int) -> ChannelRecord: ...

    @abc.abstractmethod
    def create_channel(self, channel: ChannelRecord) -> ChannelRecord: ...

    @abc.abstractmethod
    def update_channel(self, channel_id: int, fields: Dict[str, Any]) -> bool: ...

    # ---- features
    @abc.abstractmethod
    def get_feature_by_uuid(self, uuid: str) -> FeatureRecord: ...

    @abc.abstractmethod
    def get_features_by_workspace_uuid(self, workspace_uuid: str) -> List[FeatureRecord]: ...

    @abc.abstractmethod
    def create_or_edit_feature(self, feature: FeatureRecord) -> FeatureRecord: ...

    @abc.abstractmethod
    def delete_feature_by_uuid(self, uuid: str) -> bool: ...


class SQLDatabase(Database):
    def __init__(self, session: Session, deadline: Optional[float] = None):
        self.session = session
        # time.monotonic() value after which writes are refused
        self.deadline = deadline

    def _commit(self) -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            self.session.rollback()
            logger.warning("request deadline passed, write rolled back")
            raise RequestDeadlineExceeded()
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("commit failed, rolled back")
            raise

    # --------------------------
    # Tribes
    # --------------------------
    def get_tribe(self, uuid: str) -> TribeRecord:
        row = self.session.get(Tribe, uuid)
        return TribeRecord.model_validate(row) if row else TribeRecord()

    def get_all_tribes_by_owner(self, pubkey: str) -> List[TribeRecord]:
        rows = (
            self.session.query(Tribe)
            .filter(Tribe.owner_pub_key == pubkey)
            .order_by(Tribe.created.asc())
            .all()
        )
        return [TribeRecord.model_validate(r) for r in rows]

    def get_tribes_by_owner(self, pubkey: str) -> List[TribeRecord]:
        rows = (
            self.session.query(Tribe)
            .filter(
                Tribe.owner_pub_key == pubkey,
                or_(Tribe.unlisted.is_(False), Tribe.unlisted.is_(None)),
                or_(Tribe.deleted.is_(False), Tribe.deleted.is_(None)),
            )
            .order_by(Tribe.created.asc())
            .all()
        )
        return [TribeRecord.model_validate(r) for r in rows]

    def get_tribes_by_app_url(self, app_url: str) -> List[TribeRecord]:
        rows = (
            self.session.query(Tribe)
            .filter(Tribe.app_url == app_url)
            .order_by(Tribe.created.asc())
            .all()
        )
        return [TribeRecord.model_validate(r) for r in rows]

    def get_tribe_by_unique_name(self, unique_name: str) -> TribeRecord:
        row = self.session.query(Tribe).filter(Tribe.unique_name == unique_name).first()
        return TribeRecord.model_validate(row) if row else TribeRecord()

    def create_or_edit_tribe(self, tribe: TribeRecord) -> TribeRecord:
        row = self.session.get(Tribe, tribe.uuid)
        if row is None:
            row = Tribe(uuid=tribe.uuid)
            self.session.add(row)
        for k, v in tribe.model_dump(exclude={"uuid"}, exclude_none=True).items():
            setattr(row, k, v)
        self._commit()
        self.session.refresh(row)
        return TribeRecord.model_validate(row)

    def update_tribe(self, uuid: str, fields: Dict[str, Any]) -> bool:
        row = self.session.get(Tribe, uuid)
        if row is None:
            return False
        for k, v in fields.items():
            setattr(row, k, v)
        row.updated = datetime.utcnow()
        self._commit()
        return True

    # --------------------------
    # Channels
    # --------------------------
    def get_channels_by_tribe(self, tribe_uuid: str) -> List[ChannelRecord]:
        rows = (
            self.session.query(Channel)
            .filter(Channel.tribe_uuid == tribe_uuid, Channel.deleted.is_(False))
            .order_by(Channel.id.asc())
            .all()
        )
        return [ChannelRecord.model_validate(r) for r in rows]

    def get_channel(self, channel_id: int) -> ChannelRecord:
        row = self.session.get(Channel, channel_id)
        return ChannelRecord.model_validate(row) if row else ChannelRecord()

    def create_channel(self, channel: ChannelRecord) -> ChannelRecord:
        row = Channel(
            tribe_uuid=channel.tribe_uuid,
            name=channel.name,
            created=channel.created or datetime.utcnow(),
        )
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        return ChannelRecord.model_validate(row)

    def update_channel(self, channel_id: int, fields: Dict[str, Any]) -> bool:
        row = self.session.get(Channel, channel_id)
        if row is None:
            return False
        for k, v in fields.items():
            setattr(row, k, v)
        self._commit()
        return True

    # --------------------------
    # Features
    # --------------------------
    def get_feature_by_uuid(self, uuid: str) -> FeatureRecord:
        row = self.session.get(Feature, uuid)
        return FeatureRecord.model_validate(row) if row else FeatureRecord()

    def get_features_by_workspace_uuid(self, workspace_uuid: str) -> List[FeatureRecord]:
        rows = (
            self.session.query(Feature)
            .filter(Feature.workspace_uuid == workspace_uuid)
            .order_by(Feature.priority.asc(), Feature.created.asc())
            .all()
        )
        return [FeatureRecord.model_validate(r) for r in rows]

    def create_or_edit_feature(self, feature: FeatureRecord) -> FeatureRecord:
        row = self.session.get(Feature, feature.uuid)
        if row is None:
            row = Feature(uuid=feature.uuid)
            self.session.add(row)
        for k, v in feature.model_dump(exclude={"uuid"}, exclude_none=True).items():
            setattr(row, k, v)
        self._commit()
        self.session.refresh(row)
        return FeatureRecord.model_validate(row)

    def delete_feature_by_uuid(self, uuid: str) -> bool:
        row = self.session.get(Feature, uuid)
        if row is None:
            return False
        self.session.delete(row)
        self._commit()
        return True
