from fastapi import status

TENANT = "guild-1"
API = f"/api/v1/tenants/{TENANT}"


def configure(client, auth_header):
    response = client.patch(
        f"{API}/config",
        json={"bot_channel": "queue-text", "lobby_voice_room": "lobby"},
        headers=auth_header("admin", is_admin=True),
    )
    assert response.status_code == status.HTTP_200_OK


def start(client, auth_header):
    configure(client, auth_header)
    response = client.post(f"{API}/queue/start", headers=auth_header("admin", is_admin=True))
    assert response.status_code == status.HTTP_200_OK
    return response.json()


# Authentication
def test_missing_token(client):
    response = client.get(f"{API}/queue")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert "Bearer token not found" in response.json()["detail"]


def test_invalid_token(client):
    response = client.get(f"{API}/queue", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_token_for_another_tenant(client, auth_header):
    response = client.get(f"{API}/queue", headers=auth_header("alice", tenant_id="guild-2"))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert "does not belong to this tenant" in response.json()["detail"]


def test_start_queue_requires_admin(client, auth_header):
    response = client.post(f"{API}/queue/start", headers=auth_header("alice"))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert "Admin permissions required" in response.json()["detail"]


# Config
def test_config_defaults(client, auth_header):
    response = client.get(f"{API}/config", headers=auth_header("admin", is_admin=True))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["tenant_id"] == TENANT
    assert data["queue_number"] == 1
    assert data["bot_channel"] is None


def test_config_patch(client, auth_header):
    response = client.patch(
        f"{API}/config",
        json={"queue_header": "Customs", "draft_turn_timeout": 45},
        headers=auth_header("admin", is_admin=True),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["queue_header"] == "Customs"
    assert response.json()["draft_turn_timeout"] == 45


def test_config_patch_rejects_short_timer(client, auth_header):
    response = client.patch(
        f"{API}/config",
        json={"draft_turn_timeout": 5},
        headers=auth_header("admin", is_admin=True),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_config_patch_empty(client, auth_header):
    response = client.patch(f"{API}/config", json={}, headers=auth_header("admin", is_admin=True))

    assert response.status_code == status.HTTP_400_BAD_REQUEST


# Queue
def test_start_queue_without_config(client, auth_header):
    response = client.post(f"{API}/queue/start", headers=auth_header("admin", is_admin=True))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "lobby voice room" in response.json()["detail"]


def test_get_queue_before_start(client, auth_header):
    response = client.get(f"{API}/queue", headers=auth_header("alice"))

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_start_queue_twice_returns_same_queue(client, auth_header):
    first = start(client, auth_header)
    second = client.post(f"{API}/queue/start", headers=auth_header("admin", is_admin=True))

    assert second.status_code == status.HTTP_200_OK
    assert second.json()["session_number"] == first["session_number"] == 1


def test_join_and_leave(client, auth_header):
    start(client, auth_header)

    response = client.post(f"{API}/queue/join", json={"role": "mid"}, headers=auth_header("alice"))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["queue"]["buckets"]["Mid"] == ["alice"]

    again = client.post(f"{API}/queue/join", json={"role": "Top"}, headers=auth_header("alice"))
    assert again.status_code == status.HTTP_409_CONFLICT

    response = client.post(f"{API}/queue/leave", headers=auth_header("alice"))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["queue"]["buckets"]["Mid"] == []

    response = client.post(f"{API}/queue/leave", headers=auth_header("alice"))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_join_unknown_role(client, auth_header):
    start(client, auth_header)

    response = client.post(f"{API}/queue/join", json={"role": "Coach"}, headers=auth_header("alice"))

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_join_role_full(client, auth_header):
    start(client, auth_header)
    for pid in ("a", "b"):
        client.post(f"{API}/queue/join", json={"role": "Support"}, headers=auth_header(pid))

    response = client.post(f"{API}/queue/join", json={"role": "Support"}, headers=auth_header("c"))

    assert response.status_code == status.HTTP_409_CONFLICT


def test_join_without_role_prompts(client, auth_header):
    start(client, auth_header)
    client.post(f"{API}/queue/join", json={"role": "Top"}, headers=auth_header("a"))
    client.post(f"{API}/queue/join", json={"role": "Top"}, headers=auth_header("b"))

    response = client.post(f"{API}/queue/join", json={}, headers=auth_header("alice"))
    assert response.status_code == status.HTTP_200_OK
    prompt = response.json()["prompt"]
    assert prompt["open_roles"] == ["Jungle", "Mid", "ADC", "Support"]

    response = client.post(f"{API}/queue/role", json={"role": "ADC"}, headers=auth_header("alice"))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["queue"]["buckets"]["ADC"] == ["alice"]


def test_choose_role_without_prompt(client, auth_header):
    start(client, auth_header)

    response = client.post(f"{API}/queue/role", json={"role": "ADC"}, headers=auth_header("alice"))

    assert response.status_code == status.HTTP_408_REQUEST_TIMEOUT


def test_session_view_of_open_queue(client, auth_header):
    start(client, auth_header)

    response = client.get(f"{API}/session", headers=auth_header("alice"))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["phase"] == "queue"
    assert response.json()["session_number"] == 1


def test_captain_vote_without_session(client, auth_header):
    start(client, auth_header)

    response = client.post(
        f"{API}/captains/vote", json={"candidate_id": "bob"}, headers=auth_header("alice")
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


# Players
def test_observe_members(client, auth_header):
    members = {"members": [{"player_id": "a", "player_name": "Ann"}, {"player_id": "b", "player_name": "Ben"}]}

    response = client.post(f"{API}/players/observe", json=members, headers=auth_header("admin", is_admin=True))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"created": 2, "total": 2}

    response = client.post(f"{API}/players/observe", json=members, headers=auth_header("admin", is_admin=True))
    assert response.json() == {"created": 0, "total": 2}


def test_get_player_hides_hidden_rating(client, auth_header):
    client.post(
        f"{API}/players/observe",
        json={"members": [{"player_id": "a", "player_name": "Ann"}]},
        headers=auth_header("admin", is_admin=True),
    )

    public = client.get(f"{API}/players/a", headers=auth_header("alice")).json()
    assert public["points"] == 500
    assert "hidden_mmr" not in public

    full = client.get(f"{API}/players/a", headers=auth_header("admin", is_admin=True)).json()
    assert full["hidden_mmr"] == 500


def test_get_unknown_player(client, auth_header):
    response = client.get(f"{API}/players/nobody", headers=auth_header("alice"))

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert "Player not found" in response.json()["detail"]


def test_put_player_stats(client, auth_header):
    response = client.put(
        f"{API}/players/a",
        json={"points": 700, "wins": 3},
        headers=auth_header("admin", is_admin=True),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["points"] == 700
    assert data["match_wins"] == 3
    assert data["hidden_mmr"] == 500


def test_put_player_stats_requires_admin(client, auth_header):
    response = client.put(f"{API}/players/a", json={"points": 700}, headers=auth_header("alice"))

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_config_patch_pins_role_capacity(client, auth_header):
    admin = auth_header("admin", is_admin=True)

    for capacity in (1, 3, 5):
        response = client.patch(f"{API}/config", json={"per_role_capacity": capacity}, headers=admin)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.patch(f"{API}/config", json={"per_role_capacity": 2}, headers=admin)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["per_role_capacity"] == 2


def test_config_patch_rejects_unknown_keys(client, auth_header):
    response = client.patch(
        f"{API}/config", json={"team_size": 6}, headers=auth_header("admin", is_admin=True)
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_config_patch_session_and_rating_overrides(client, auth_header):
    response = client.patch(
        f"{API}/config",
        json={
            "role_pick_timeout": 20,
            "presence_debounce": 0.5,
            "cleanup_delay": 3,
            "room_retry_attempts": 5,
            "k_points": 40,
            "k_ramp_games": 5,
        },
        headers=auth_header("admin", is_admin=True),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["role_pick_timeout"] == 20
    assert data["presence_debounce"] == 0.5
    assert data["cleanup_delay"] == 3
    assert data["room_retry_attempts"] == 5
    assert data["k_points"] == 40
    assert data["k_ramp_games"] == 5
    assert data["d_points"] is None


def test_config_patch_rejects_bad_rating_constant(client, auth_header):
    response = client.patch(
        f"{API}/config", json={"bridge_cap": 1.0}, headers=auth_header("admin", is_admin=True)
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
