import time
from datetime import datetime, timedelta

import pytest

from tribes_api.db import RequestDeadlineExceeded, SQLDatabase
from tribes_api.schemas import ChannelRecord, FeatureRecord, TribeRecord


def _tribe(uuid, owner="pk", minutes=0, **kw):
    return TribeRecord(uuid=uuid, owner_pub_key=owner, created=datetime(2024, 1, 1) + timedelta(minutes=minutes), **kw)


def test_missing_tribe_is_zero_record(sql_db):
    assert sql_db.get_tribe("nope") == TribeRecord()
    assert sql_db.get_tribe_by_unique_name("nope").uuid == ""


def test_create_then_edit_tribe_by_uuid(sql_db):
    sql_db.create_or_edit_tribe(_tribe("u1", name="One", tags=["a"]))
    stored = sql_db.get_tribe("u1")
    assert stored.name == "One"
    assert stored.tags == ["a"]

    sql_db.create_or_edit_tribe(stored.model_copy(update={"name": "Uno"}))
    assert sql_db.get_tribe("u1").name == "Uno"
    assert sql_db.get_tribe("u1").tags == ["a"]


def test_owner_listings_filter_by_flags(sql_db):
    sql_db.create_or_edit_tribe(_tribe("visible", minutes=1))
    sql_db.create_or_edit_tribe(_tribe("unlisted", minutes=2, unlisted=True))
    sql_db.create_or_edit_tribe(_tribe("deleted", minutes=3, deleted=True))
    sql_db.create_or_edit_tribe(_tribe("elsewhere", owner="someone-else"))

    all_uuids = [t.uuid for t in sql_db.get_all_tribes_by_owner("pk")]
    visible_uuids = [t.uuid for t in sql_db.get_tribes_by_owner("pk")]

    assert all_uuids == ["visible", "unlisted", "deleted"]
    assert visible_uuids == ["visible"]


def test_tribes_by_app_url_and_unique_name(sql_db):
    sql_db.create_or_edit_tribe(_tribe("a", minutes=1, app_url="https://app", unique_name="alpha"))
    sql_db.create_or_edit_tribe(_tribe("b", minutes=2, app_url="https://app"))

    assert [t.uuid for t in sql_db.get_tribes_by_app_url("https://app")] == ["a", "b"]
    assert sql_db.get_tribe_by_unique_name("alpha").uuid == "a"


def test_update_tribe_fields(sql_db):
    sql_db.create_or_edit_tribe(_tribe("u1"))

    assert sql_db.update_tribe("u1", {"preview": "p", "deleted": True}) is True
    stored = sql_db.get_tribe("u1")
    assert stored.preview == "p"
    assert stored.deleted is True
    assert stored.updated is not None
    assert sql_db.update_tribe("missing", {"deleted": True}) is False


def test_channels_exclude_deleted_and_leave_tribe_alone(sql_db):
    sql_db.create_or_edit_tribe(_tribe("u1", name="T"))
    before = sql_db.get_tribe("u1")
    first = sql_db.create_channel(ChannelRecord(tribe_uuid="u1", name="general"))
    second = sql_db.create_channel(ChannelRecord(tribe_uuid="u1", name="random"))
    sql_db.update_channel(second.id, {"deleted": True})

    channels = sql_db.get_channels_by_tribe("u1")

    assert [c.id for c in channels] == [first.id]
    assert sql_db.get_channel(second.id).deleted is True
    assert sql_db.get_channel(12345).id == 0
    assert sql_db.get_tribe("u1") == before


def test_feature_crud(sql_db):
    sql_db.create_or_edit_feature(FeatureRecord(uuid="f1", workspace_uuid="ws", name="late", priority=2))
    sql_db.create_or_edit_feature(FeatureRecord(uuid="f2", workspace_uuid="ws", name="early", priority=1))

    assert [f.uuid for f in sql_db.get_features_by_workspace_uuid("ws")] == ["f2", "f1"]
    assert sql_db.get_feature_by_uuid("f1").name == "late"
    assert sql_db.delete_feature_by_uuid("f1") is True
    assert sql_db.delete_feature_by_uuid("f1") is False
    assert sql_db.get_feature_by_uuid("f1").uuid == ""


def test_write_past_deadline_is_rolled_back(sql_db):
    late = SQLDatabase(sql_db.session, deadline=time.monotonic() - 1)

    with pytest.raises(RequestDeadlineExceeded):
        late.create_or_edit_tribe(_tribe("u1", name="Too late"))

    assert sql_db.get_tribe("u1").uuid == ""


def test_write_before_deadline_commits(sql_db):
    on_time = SQLDatabase(sql_db.session, deadline=time.monotonic() + 60)

    on_time.create_or_edit_tribe(_tribe("u1", name="On time"))

    assert sql_db.get_tribe("u1").name == "On time"
