"""
Tests for the game repository.
"""
from datetime import date, timedelta

import pytest

from edh_stats.core.errors import NoFieldsToUpdate, NotFoundOrForbidden, ValidationFailed


def days_ago(n):
    return date.today() - timedelta(days=n)


def test_create_and_read_back(games, make_user, make_commander):
    alice = make_user("alice")
    urza = make_commander(alice, name="Urza", colors=["U"])
    game = games.create(alice.id, {
        "date": days_ago(2),
        "player_count": 4,
        "commander_id": urza.id,
        "won": True,
        "rounds": 9,
        "starting_player_won": True,
        "notes": "  Won with   Paradox Engine ",
    }).unwrap()

    assert game.commander_name == "Urza"
    assert game.commander_colors == ["U"]
    assert game.notes == "Won with Paradox Engine"
    assert game.sol_ring_turn_one_won is False

    fetched = games.find_by_id(game.id)
    assert fetched.date == days_ago(2)
    assert fetched.won is True
    assert fetched.rounds == 9
    assert games.get_for_owner(game.id, alice.id) == fetched


@pytest.mark.parametrize("player_count, accepted", [(1, False), (2, True), (8, True), (9, False)])
def test_player_count_bounds(games, make_user, make_commander, player_count, accepted):
    alice = make_user("alice")
    urza = make_commander(alice)
    result = games.create(alice.id, {"date": days_ago(1), "player_count": player_count, "commander_id": urza.id})
    assert result.ok is accepted
    if not accepted:
        assert isinstance(result.error, ValidationFailed)


@pytest.mark.parametrize("field, value", [
    ("date", date.today() + timedelta(days=1)),
    ("date", date.today() - timedelta(days=400)),
    ("rounds", 0),
    ("rounds", 51),
    ("notes", "z" * 30),
])
def test_create_rejects_invalid_fields(games, make_user, make_commander, field, value):
    alice = make_user("alice")
    urza = make_commander(alice)
    data = {"date": days_ago(1), "player_count": 4, "commander_id": urza.id, field: value}
    assert isinstance(games.create(alice.id, data).error, ValidationFailed)


def test_cannot_log_game_with_foreign_commander(games, make_user, make_commander):
    alice = make_user("alice")
    bob = make_user("bobby")
    urza = make_commander(alice)
    result = games.create(bob.id, {"date": days_ago(1), "player_count": 4, "commander_id": urza.id})
    assert isinstance(result.error, NotFoundOrForbidden)
    assert games.list(bob.id).unwrap() == []


def test_other_users_game_is_not_visible(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    bob = make_user("bobby")
    game = make_game(alice, make_commander(alice))

    assert games.get_for_owner(game.id, bob.id) is None
    assert isinstance(games.update(game.id, bob.id, {"won": True}).error, NotFoundOrForbidden)
    assert games.delete(game.id, bob.id) is False
    assert games.find_by_id(game.id).won is False


def test_update_changes_only_supplied_fields(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    game = make_game(alice, make_commander(alice), rounds=7, notes="close one")
    updated = games.update(game.id, alice.id, {"won": True}).unwrap()
    assert updated.won is True
    assert updated.rounds == 7
    assert updated.notes == "close one"


def test_update_moves_game_between_own_commanders(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    bob = make_user("bobby")
    urza = make_commander(alice, name="Urza")
    krenko = make_commander(alice, name="Krenko", colors=["R"])
    foreign = make_commander(bob, name="Atraxa", colors=["W", "U", "B", "G"])
    game = make_game(alice, urza)

    moved = games.update(game.id, alice.id, {"commander_id": krenko.id}).unwrap()
    assert moved.commander_name == "Krenko"
    assert isinstance(games.update(game.id, alice.id, {"commander_id": foreign.id}).error, NotFoundOrForbidden)
    assert games.find_by_id(game.id).commander_id == krenko.id


def test_update_validation(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    game = make_game(alice, make_commander(alice))
    assert isinstance(games.update(game.id, alice.id, {}).error, NoFieldsToUpdate)
    assert isinstance(games.update(game.id, alice.id, {"won": None}).error, ValidationFailed)
    assert isinstance(games.update(game.id, alice.id, {"player_count": 9}).error, ValidationFailed)
    assert games.update(game.id, alice.id, {"rounds": None}).ok


def test_delete_is_idempotent(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    game = make_game(alice, make_commander(alice))
    assert games.delete(game.id, alice.id) is True
    assert games.delete(game.id, alice.id) is False


def test_deleting_commander_removes_its_games(games, commanders, make_user, make_commander, make_game):
    alice = make_user("alice")
    urza = make_commander(alice)
    game = make_game(alice, urza)
    assert commanders.delete(urza.id, alice.id) is True
    assert games.find_by_id(game.id) is None


def test_list_filters(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    urza = make_commander(alice, name="Urza")
    krenko = make_commander(alice, name="Krenko", colors=["R"])
    make_game(alice, urza, days_ago=10, won=True, player_count=4)
    make_game(alice, urza, days_ago=5, won=False, player_count=3)
    make_game(alice, krenko, days_ago=1, won=True, player_count=4)

    assert len(games.list(alice.id).unwrap()) == 3
    assert len(games.list(alice.id, filters={"commander": "urz"}).unwrap()) == 2
    assert len(games.list(alice.id, filters={"commander_id": krenko.id}).unwrap()) == 1
    assert len(games.list(alice.id, filters={"player_count": 3}).unwrap()) == 1
    assert len(games.list(alice.id, filters={"won": True}).unwrap()) == 2
    assert len(games.list(alice.id, filters={"won": False}).unwrap()) == 1
    assert len(games.list(alice.id, filters={"date_from": days_ago(6), "date_to": days_ago(2)}).unwrap()) == 1


def test_list_rejects_inverted_date_range(games, make_user):
    alice = make_user("alice")
    result = games.list(alice.id, filters={"date_from": days_ago(1), "date_to": days_ago(5)})
    assert isinstance(result.error, ValidationFailed)


def test_list_sorting_and_pagination(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    urza = make_commander(alice)
    for n, count in ((3, 5), (1, 2), (2, 8)):
        make_game(alice, urza, days_ago=n, player_count=count)

    newest_first = games.list(alice.id).unwrap()
    assert [g.date for g in newest_first] == [days_ago(1), days_ago(2), days_ago(3)]

    by_players = games.list(alice.id, sort={"field": "player_count", "order": "asc"}).unwrap()
    assert [g.player_count for g in by_players] == [2, 5, 8]

    page = games.list(alice.id, limit=1, offset=1).unwrap()
    assert [g.date for g in page] == [days_ago(2)]

    assert isinstance(games.list(alice.id, limit=101).error, ValidationFailed)
    assert isinstance(games.list(alice.id, sort={"field": "notes"}).error, ValidationFailed)


def test_export_is_unbounded(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    urza = make_commander(alice)
    for n in range(1, 4):
        make_game(alice, urza, days_ago=n, won=n % 2 == 1)

    exported = games.export(alice.id).unwrap()
    assert [g.date for g in exported] == [days_ago(1), days_ago(2), days_ago(3)]
    assert len(games.export(alice.id, filters={"won": True}).unwrap()) == 2
    assert games.export(alice.id + 100).unwrap() == []


@pytest.mark.parametrize("filters", [
    {"dateFrom": days_ago(2), "dateTo": days_ago(5)},
    {"commander_name": "urza"},
])
def test_list_rejects_unknown_filter_keys(games, make_user, make_commander, make_game, filters):
    alice = make_user("alice")
    make_game(alice, make_commander(alice))
    assert isinstance(games.list(alice.id, filters=filters).error, ValidationFailed)
    assert isinstance(games.export(alice.id, filters=filters).error, ValidationFailed)


def test_list_rejects_unknown_sort_keys(games, make_user):
    alice = make_user("alice")
    result = games.list(alice.id, sort={"field": "date", "direction": "asc"})
    assert isinstance(result.error, ValidationFailed)


def test_update_rejects_unknown_fields(games, make_user, make_commander, make_game):
    alice = make_user("alice")
    game = make_game(alice, make_commander(alice))
    assert isinstance(games.update(game.id, alice.id, {"user_id": 999}).error, ValidationFailed)
    assert games.find_by_id(game.id).user_id == alice.id
