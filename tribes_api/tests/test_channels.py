from tribes_api.schemas import ChannelRecord, TribeRecord

OWNER = "owner_pubkey"


def test_create_channel_for_owned_tribe(client, mock_db, auth_headers):
    mock_db.get_tribe.return_value = TribeRecord(uuid="u1", owner_pub_key=OWNER)
    mock_db.create_channel.side_effect = lambda ch: ch.model_copy(update={"id": 7})

    resp = client.post("/channel", json={"tribe_uuid": "u1", "name": " general "}, headers=auth_headers(OWNER))

    assert resp.status_code == 200
    assert resp.json()["id"] == 7
    assert resp.json()["name"] == "general"


def test_create_channel_for_someone_elses_tribe(client, mock_db, auth_headers):
    mock_db.get_tribe.return_value = TribeRecord(uuid="u1", owner_pub_key=OWNER)

    resp = client.post("/channel", json={"tribe_uuid": "u1", "name": "general"}, headers=auth_headers("intruder"))

    assert resp.status_code == 401
    mock_db.create_channel.assert_not_called()


def test_create_channel_for_missing_tribe(client, mock_db, auth_headers):
    resp = client.post("/channel", json={"tribe_uuid": "nope", "name": "general"}, headers=auth_headers(OWNER))

    assert resp.status_code == 404


def test_create_channel_needs_a_name(client, auth_headers):
    resp = client.post("/channel", json={"tribe_uuid": "u1", "name": "  "}, headers=auth_headers(OWNER))

    assert resp.status_code == 422


def test_delete_channel_soft_deletes(client, mock_db, auth_headers):
    mock_db.get_channel.return_value = ChannelRecord(id=3, tribe_uuid="u1", name="general")
    mock_db.get_tribe.return_value = TribeRecord(uuid="u1", owner_pub_key=OWNER)

    resp = client.delete("/channel/3", headers=auth_headers(OWNER))

    assert resp.status_code == 200
    mock_db.update_channel.assert_called_once_with(3, {"deleted": True})


def test_delete_missing_channel(client, mock_db, auth_headers):
    resp = client.delete("/channel/99", headers=auth_headers(OWNER))

    assert resp.status_code == 404
    mock_db.update_channel.assert_not_called()


def test_delete_channel_by_non_owner(client, mock_db, auth_headers):
    mock_db.get_channel.return_value = ChannelRecord(id=3, tribe_uuid="u1")
    mock_db.get_tribe.return_value = TribeRecord(uuid="u1", owner_pub_key=OWNER)

    resp = client.delete("/channel/3", headers=auth_headers("intruder"))

    assert resp.status_code == 401
    mock_db.update_channel.assert_not_called()
