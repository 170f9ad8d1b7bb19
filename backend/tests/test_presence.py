import pytest

from fakeartist.game.errors import NotFound


def _keep_alive(service, room_id, player_ids):
    for pid in player_ids:
        service.heartbeat(room_id, pid)


def _age_out(service, clock, room_id, survivors):
    """Let everyone but ``survivors`` go quiet for longer than the timeout."""
    clock.advance(60)
    _keep_alive(service, room_id, survivors)
    clock.advance(31)


def test_host_timeout_in_lobby_closes_room(service, clock, seat_room):
    room_id = seat_room(2)

    _age_out(service, clock, room_id, survivors=["p1"])
    report = service.sweep()

    assert room_id in report.closed_rooms
    with pytest.raises(NotFound):
        service.get_room(room_id)
    assert "p0" not in service.presence
    assert "p1" not in service.presence


def test_host_timeout_mid_game_keeps_room(service, clock, seat_room):
    room_id = seat_room(5)
    service.start_game(room_id, "p0")
    service.next_turn(room_id, "p0")
    before = service.get_room(room_id)

    _age_out(service, clock, room_id, survivors=["p1", "p2", "p3", "p4"])
    report = service.sweep()

    room = service.get_room(room_id)
    assert room_id in report.updated_rooms
    assert len(room.players) == 5
    assert room.find_player("p0").is_disconnected
    assert room.current_turn == before.current_turn
    assert room.game_phase == "drawing"
    assert "p0" not in service.presence


def test_host_timeout_with_two_players_mid_game_closes_room(service, clock, seat_room):
    room_id = seat_room(3)
    service.start_game(room_id, "p0")
    service.kick_player(room_id, "p0", "p2")

    _age_out(service, clock, room_id, survivors=["p1"])
    report = service.sweep()

    assert room_id in report.closed_rooms
    assert room_id not in service.registry


def test_heartbeat_clears_disconnected_flag(service, clock, seat_room):
    room_id = seat_room(4)
    service.start_game(room_id, "p0")
    _age_out(service, clock, room_id, survivors=["p1", "p2", "p3"])
    service.sweep()

    room = service.heartbeat(room_id, "p0")

    assert not room.find_player("p0").is_disconnected
    assert "p0" in service.presence


def test_regular_timeout_removes_player_and_fixes_turn(service, clock, seat_room):
    room_id = seat_room(4)
    service.start_game(room_id, "p0")
    service.next_turn(room_id, "p0")
    service.next_turn(room_id, "p0")
    service.next_turn(room_id, "p0")
    assert service.get_room(room_id).current_player.id == "p3"

    _age_out(service, clock, room_id, survivors=["p0", "p1", "p2"])
    report = service.sweep()

    room = service.get_room(room_id)
    assert report.evicted == ["p3"]
    assert [p.id for p in room.players] == ["p0", "p1", "p2"]
    assert room.current_turn == 0
    assert room.current_turn_start_time == clock.now
    assert "p3" not in service.presence


def test_fresh_heartbeats_survive_sweep(service, clock, seat_room):
    room_id = seat_room(3)

    clock.advance(80)
    _keep_alive(service, room_id, ["p0", "p1", "p2"])
    clock.advance(80)
    report = service.sweep()

    assert report.evicted == []
    assert len(service.get_room(room_id).players) == 3


def test_timeout_during_voting_can_finish_the_game(service, clock, seat_room):
    room_id = seat_room(4, turns_per_player=1)
    service.start_game(room_id, "p0")
    for _ in range(4):
        service.next_turn(room_id, "p0")
    room = service.get_room(room_id)
    assert room.game_phase == "voting"

    fake = room.fake_artists[0].id
    regulars = [p.id for p in room.regular_players]
    straggler = next(pid for pid in regulars if pid != "p0")
    service.guess_word(room_id, fake, "nope")
    for pid in regulars:
        if pid != straggler:
            service.vote(room_id, pid, fake)

    survivors = [p.id for p in room.players if p.id != straggler]
    _age_out(service, clock, room_id, survivors=survivors)
    service.sweep()

    room = service.get_room(room_id)
    assert room.find_player(straggler) is None
    assert room.game_phase == "results"


def test_records_for_missing_rooms_are_dropped(service, clock):
    service.presence.touch("ghost", "NOROOM", False, clock.now)
    clock.advance(100)

    report = service.sweep()

    assert report.evicted == []
    assert "ghost" not in service.presence


def test_leave_and_kick_drop_presence(service, seat_room):
    room_id = seat_room(4)

    service.leave_room(room_id, "p1")
    service.kick_player(room_id, "p0", "p2")

    assert "p1" not in service.presence
    assert "p2" not in service.presence
    assert "p3" in service.presence
