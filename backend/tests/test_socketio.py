def _events(sio_client, name):
    return [msg["args"][0] for msg in sio_client.get_received() if msg["name"] == name]


def test_subscribe_acks_with_snapshot(sio_client, seat_room):
    room_id = seat_room(3)

    ack = sio_client.emit("room:subscribe", {"roomId": room_id, "playerId": "p1"}, callback=True)

    assert ack["ok"] is True
    assert ack["room"]["id"] == room_id
    assert [p["id"] for p in ack["room"]["players"]] == ["p0", "p1", "p2"]


def test_subscribe_unknown_room(sio_client):
    ack = sio_client.emit("room:subscribe", {"roomId": "NOPE00"}, callback=True)

    assert ack == {"ok": False, "error": "room_not_found"}
    assert _events(sio_client, "room:error") == [{"error": "room_not_found"}]


def test_subscribe_without_room_id(sio_client):
    ack = sio_client.emit("room:subscribe", {}, callback=True)
    assert ack == {"ok": False, "error": "invalid_payload"}


def test_http_commands_push_room_state(sio_client, client, seat_room):
    room_id = seat_room(2)
    sio_client.emit("room:subscribe", {"roomId": room_id}, callback=True)
    sio_client.get_received()

    res = client.post(
        f"/api/game/{room_id}/join",
        json={"playerId": "p9", "playerName": "Newcomer", "avatar": "z", "color": "#abcdef"},
    )
    assert res.status_code == 200

    pushed = _events(sio_client, "room:state")
    assert len(pushed) == 1
    assert [p["id"] for p in pushed[0]["players"]] == ["p0", "p1", "p9"]


def test_host_leave_pushes_room_closed(sio_client, client, seat_room):
    room_id = seat_room(3)
    sio_client.emit("room:subscribe", {"roomId": room_id}, callback=True)
    sio_client.get_received()

    client.post(f"/api/game/{room_id}/leave", json={"playerId": "p0"})

    assert _events(sio_client, "room:closed") == [{"roomId": room_id}]


def test_unsubscribe_stops_pushes(sio_client, client, seat_room):
    room_id = seat_room(2)
    sio_client.emit("room:subscribe", {"roomId": room_id}, callback=True)
    assert sio_client.emit("room:unsubscribe", {"roomId": room_id}, callback=True) == {"ok": True}
    sio_client.get_received()

    client.post(f"/api/game/{room_id}/start", json={"playerId": "p0"})

    assert _events(sio_client, "room:state") == []


def test_heartbeat_over_socket(sio_client, service, clock, seat_room):
    room_id = seat_room(4)
    service.start_game(room_id, "p0")
    clock.advance(60)
    for pid in ("p1", "p2", "p3"):
        service.heartbeat(room_id, pid)
    clock.advance(31)
    service.sweep()
    assert service.get_room(room_id).find_player("p0").is_disconnected

    sio_client.emit("room:subscribe", {"roomId": room_id}, callback=True)
    sio_client.get_received()

    ack = sio_client.emit("player:heartbeat", {"roomId": room_id, "playerId": "p0"}, callback=True)

    assert ack == {"ok": True}
    assert not service.get_room(room_id).find_player("p0").is_disconnected
    pushed = _events(sio_client, "room:state")
    assert len(pushed) == 1
    assert pushed[0]["players"][0]["isDisconnected"] is False


def test_heartbeat_for_unknown_player(sio_client, seat_room):
    room_id = seat_room(2)
    ack = sio_client.emit("player:heartbeat", {"roomId": room_id, "playerId": "ghost"}, callback=True)
    assert ack == {"ok": False, "error": "player_not_found"}


def test_http_heartbeat_that_reconnects_host_is_pushed(sio_client, client, service, clock, seat_room):
    room_id = seat_room(4)
    service.start_game(room_id, "p0")
    clock.advance(60)
    for pid in ("p1", "p2", "p3"):
        service.heartbeat(room_id, pid)
    clock.advance(31)
    service.sweep()

    sio_client.emit("room:subscribe", {"roomId": room_id}, callback=True)
    sio_client.get_received()

    res = client.post(f"/api/game/{room_id}/heartbeat", json={"playerId": "p0"})
    assert res.get_json() == {"success": True}
    pushed = _events(sio_client, "room:state")
    assert len(pushed) == 1
    assert pushed[0]["players"][0]["isDisconnected"] is False

    client.post(f"/api/game/{room_id}/heartbeat", json={"playerId": "p0"})
    assert _events(sio_client, "room:state") == []
