import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256"

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from tribes_api.app.common.auth import TribeVerificationError, encode_jwt
from tribes_api.db import Database, SQLDatabase
from tribes_api.handlers import get_database, get_tribe_verifier
from tribes_api.main import app
from tribes_api.schemas import ChannelRecord, FeatureRecord, TribeRecord
from tribes_api.tribal_core import Base, build_engine, get_db


@pytest.fixture
def auth_headers():
    def _headers(pubkey):
        return {"x-jwt": encode_jwt(pubkey)}

    return _headers


@pytest.fixture
def mock_db():
    db = MagicMock(spec=Database)
    db.get_tribe.return_value = TribeRecord()
    db.get_tribe_by_unique_name.return_value = TribeRecord()
    db.get_all_tribes_by_owner.return_value = []
    db.get_tribes_by_owner.return_value = []
    db.get_tribes_by_app_url.return_value = []
    db.get_channels_by_tribe.return_value = []
    db.get_channel.return_value = ChannelRecord()
    db.get_feature_by_uuid.return_value = FeatureRecord()
    db.get_features_by_workspace_uuid.return_value = []
    db.update_tribe.return_value = True
    db.update_channel.return_value = True
    db.create_or_edit_tribe.side_effect = lambda tribe: tribe
    db.create_or_edit_feature.side_effect = lambda feature: feature
    return db


@pytest.fixture
def uuid_owners():
    """Maps tribe uuid -> owner pubkey for the fake verifier."""
    return {}


@pytest.fixture
def client(mock_db, uuid_owners):
    def fake_verify(uuid, check_timestamp):
        if uuid not in uuid_owners:
            raise TribeVerificationError("unknown uuid")
        return uuid_owners[uuid]

    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_tribe_verifier] = lambda: fake_verify
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def sql_db(session_factory):
    with session_factory() as session:
        yield SQLDatabase(session)


@pytest.fixture
def live_client(session_factory):
    """Real gateway, real JWT verifier, fresh in-memory database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
