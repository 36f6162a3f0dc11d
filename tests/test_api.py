"""
Tests for the HTTP surface (admin commands and host events)
"""
import pytest
from fastapi.testclient import TestClient

from elimination_chamber.config import load_config
from elimination_chamber.main import build_lifecycle, create_app


@pytest.fixture
def api(config, client, game_mode, hud):
    lifecycle = build_lifecycle(config, client=client, game_mode=game_mode, hud=hud)
    with TestClient(create_app(lifecycle=lifecycle)) as test_client:
        yield test_client


def test_health(api):
    response = api.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["session_active"] is False


def test_start_and_status(api):
    response = api.post("/admin/start", json={"lives": 4})
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["lives"] == 4
    assert response.json()["queue_size"] == 19

    status = api.get("/admin/status").json()
    assert status["active"] is True
    assert status["queue_size"] == 19
    assert status["queued_maps"][0]["external_id"] == 2


def test_start_without_body(api):
    assert api.post("/admin/start").status_code == 200


def test_second_start_conflicts(api):
    api.post("/admin/start")
    response = api.post("/admin/start")
    assert response.status_code == 409
    assert response.json()["detail"] == "Session already active."


def test_start_failure_hides_transport_details(api, client):
    client.results = []
    response = api.post("/admin/start")
    assert response.status_code == 409
    assert response.json()["detail"] == "Failed to add the first map."


def test_start_rejects_bad_lives(api):
    assert api.post("/admin/start", json={"lives": "many"}).status_code == 400


def test_stop(api):
    api.post("/admin/start")
    response = api.post("/admin/stop")
    assert response.json() == {"success": True, "message": "Session stopped."}
    assert api.get("/admin/status").json()["queue_size"] == 0


def test_set_lives(api, game_mode):
    response = api.post("/admin/lives", json={"lives": 6})
    assert response.status_code == 200
    assert response.json()["lives"] == 6

    api.post("/admin/start")
    assert game_mode.settings["S_LivesStart"] == 6


@pytest.mark.parametrize("payload", [{}, {"lives": 0}, {"lives": 11}, {"lives": "x"}])
def test_set_lives_validation(api, payload):
    assert api.post("/admin/lives", json=payload).status_code == 400


def test_next_requires_session(api):
    response = api.post("/admin/next")
    assert response.status_code == 409


def test_next_skips_map(api, game_mode):
    api.post("/admin/start")
    response = api.post("/admin/next")
    assert response.status_code == 200
    assert response.json()["queue_size"] == 18
    assert game_mode.calls[-1][0] == "next_map"


def test_player_events(api, hud):
    api.post("/admin/start")

    assert api.post("/events/player-join", json={"login": "carol", "nickname": "Carol"}).status_code == 200
    assert api.get("/admin/status").json()["player_states"]["carol"]["lives"] == 3
    assert [p.login for p in hud.connected_players()] == ["carol"]

    api.post("/events/player-leave", json={"login": "carol"})
    assert api.get("/admin/status").json()["player_states"] == {}
    assert hud.connected_players() == []


def test_player_event_requires_login(api):
    assert api.post("/events/player-join", json={"nickname": "nobody"}).status_code == 400


def test_players_connected_before_start_get_state(api):
    api.post("/events/player-join", json={"login": "dave"})
    api.post("/admin/start")
    assert "dave" in api.get("/admin/status").json()["player_states"]


def test_map_events(api, client):
    api.post("/admin/start")
    response = api.post("/events/map-end")
    assert response.json()["queue_size"] == 18

    api.post("/events/map-begin")
    assert client.search_calls == [20]


def test_config_endpoint(api, config):
    body = api.get("/config").json()
    assert body["config"]["livesStart"] == 3
    assert body["config"]["tmxFilters"]["lengthMin"] == 30
    assert body["session"] is None

    api.post("/admin/start")
    assert api.get("/config").json()["session"]["playlist_path"] == config.playlist_path


def test_shutdown_stops_session(config, client, game_mode, hud):
    lifecycle = build_lifecycle(config, client=client, game_mode=game_mode, hud=hud)
    with TestClient(create_app(lifecycle=lifecycle)) as test_client:
        test_client.post("/admin/start")
    assert lifecycle.active is False
    assert client.closed is True


def test_start_rejects_out_of_range_lives(api, client):
    for lives in (0, 11):
        response = api.post("/admin/start", json={"lives": lives})
        assert response.status_code == 400
        assert response.json()["detail"] == "Lives must be between 1 and 10."
    assert client.search_calls == []


def test_set_lives_persists_default(config, client, game_mode, hud, tmp_path):
    config_file = tmp_path / "elimination_chamber.yaml"
    config_file.write_text("livesStart: 3\nwinnersCount: 2\n", encoding="utf-8")
    lifecycle = build_lifecycle(config, client=client, game_mode=game_mode, hud=hud)

    with TestClient(create_app(lifecycle=lifecycle, config_path=str(config_file))) as test_client:
        response = test_client.post("/admin/lives", json={"lives": 7, "persist": True})
        assert response.status_code == 200
        assert response.json()["persisted"] is True

        # next session and every later one start with 7
        test_client.post("/admin/start")
        test_client.post("/admin/stop")
        test_client.post("/admin/start")

    assert game_mode.settings["S_LivesStart"] == 7
    assert load_config(str(config_file)).lives_start == 7
    assert load_config(str(config_file)).winners_count == 2


def test_set_lives_persist_without_config_file(config, client, game_mode, hud, tmp_path):
    lifecycle = build_lifecycle(config, client=client, game_mode=game_mode, hud=hud)
    app = create_app(lifecycle=lifecycle, config_path=str(tmp_path / "missing.yaml"))

    with TestClient(app) as test_client:
        response = test_client.post("/admin/lives", json={"lives": 7, "persist": True})

    assert response.status_code == 409
    assert lifecycle.config.lives_start == 3


def test_set_lives_not_persisted_by_default(api):
    assert api.post("/admin/lives", json={"lives": 4}).json()["persisted"] is False
