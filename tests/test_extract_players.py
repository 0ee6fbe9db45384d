"""Tests for the post-header player record scan and its reconciliation with header players."""

from __future__ import annotations

import io
import logging

import pytest

from app.dissect_parser.schemas.schemas import Player
from app.dissect_parser.schemas.store import InMemoryUnknownBlockStore
from app.dissect_parser.src.byte_cursor import ByteCursor
from app.dissect_parser.src.core import PatternNotFoundError, UnexpectedEOFError
from app.dissect_parser.src.extract_players import (
    MAX_PLAYERS,
    TEAM_MARKER,
    UNKNOWN_MARKER,
    merge_duplicate_players,
    reconcile_player,
    scan_players,
    team_index_from_indicator,
)
from tests.builders import body_string, player_record


def _cursor(data: bytes) -> ByteCursor:
    return ByteCursor(io.BytesIO(data))


@pytest.mark.parametrize(("indicator", "team_index"), [(4, 1), (7, 0), (0, 1), (-3, 0)])
def test_team_index_from_indicator(indicator: int, team_index: int):
    """Even indicators map to team 1, odd to team 0."""
    assert team_index_from_indicator(indicator) == team_index


def test_scan_players_appends_unknown_players():
    """Players missing from the header are appended with scanner fields only."""
    body = player_record("Alpha", "profile-a", 4) + player_record("Bravo", "profile-b", 7)
    players: list[Player] = []

    scan_players(_cursor(body), players)

    assert [(p.username, p.profile_id, p.team_index) for p in players] == [
        ("Alpha", "profile-a", 1),
        ("Bravo", "profile-b", 0),
    ]
    assert players[0].id == ""


def test_scan_players_enriches_header_players_in_place():
    """A username match overwrites profile id and team index without duplicating the player."""
    alpha = Player(id="p1", username="Alpha", team_index=0, hero_name=12)
    players = [alpha]

    scan_players(_cursor(player_record("Alpha", "profile-a", 2)), players)

    assert len(players) == 1
    assert players[0] is alpha
    assert (alpha.profile_id, alpha.team_index, alpha.hero_name) == ("profile-a", 1, 12)


def test_scan_players_does_not_duplicate_repeated_records():
    """A username seen twice by the scanner stays a single entry."""
    body = player_record("Alpha", "profile-a", 2) + player_record("Alpha", "profile-a2", 3)
    players: list[Player] = []

    scan_players(_cursor(body), players)

    assert len(players) == 1
    assert (players[0].profile_id, players[0].team_index) == ("profile-a2", 0)


def test_scan_players_keeps_distinct_undecodable_usernames_apart():
    """Usernames that differ only in undecodable bytes stay separate entries."""
    body = player_record(b"\xff", "prof-1", 4) + player_record(b"\xfe", "prof-2", 7)
    players: list[Player] = []

    scan_players(_cursor(body), players)

    assert [(p.username_bytes, p.profile_id, p.team_index) for p in players] == [
        (b"\xff", "prof-1", 1),
        (b"\xfe", "prof-2", 0),
    ]
    assert all(p.username == "�" for p in players)


def test_scan_players_matches_header_players_on_raw_bytes():
    """A header player is enriched only by the record with its exact username bytes."""
    header_player = Player(id="p1", username="�").bind_raw_username(b"\xfe")
    players = [header_player]

    scan_players(_cursor(player_record(b"\xff", "prof-1", 4) + player_record(b"\xfe", "prof-2", 7)), players)

    assert len(players) == 2
    assert (header_player.profile_id, header_player.team_index) == ("prof-2", 0)
    assert players[1].username_bytes == b"\xff"


def test_scan_players_merges_header_players_sharing_a_username():
    """Two header records with the same name end up as one enriched entry."""
    first = Player(id="p1", username="Alpha", hero_name=7)
    second = Player(id="p2", username="Alpha", role_name="Entry", alliance=3)
    bravo = Player(id="p3", username="Bravo")
    players = [first, second, bravo]

    scan_players(_cursor(player_record("Alpha", "pa", 4)), players)

    assert players == [first, bravo]
    assert (first.id, first.profile_id, first.team_index) == ("p1", "pa", 1)
    assert (first.hero_name, first.role_name, first.alliance) == (7, "Entry", 3)


def test_merge_duplicate_players_leaves_nameless_players_alone():
    """Players without a username are never folded together."""
    players = [Player(id="p1"), Player(id="p2"), Player(id="p3", username="Alpha"), Player(id="p4", username="Alpha")]

    merge_duplicate_players(players)

    assert [p.id for p in players] == ["p1", "p2", "p3"]


def test_scan_players_without_records_is_a_clean_end():
    """A body with no team marker ends the scan without error."""
    players = [Player(username="Alpha")]
    scan_players(_cursor(b"\x00" * 64), players)
    assert players == [Player(username="Alpha")]


def test_scan_players_stops_after_max_players():
    """At most MAX_PLAYERS records are read; the rest of the stream is left alone."""
    body = b"".join(player_record(f"p{i}", f"prof{i}", i) for i in range(MAX_PLAYERS + 2))
    players: list[Player] = []

    scan_players(_cursor(body), players)

    assert len(players) == MAX_PLAYERS
    assert players[-1].username == f"p{MAX_PLAYERS - 1}"


def test_missing_profile_marker_is_fatal():
    """Only the team marker may signal the end of records; other seeks are fatal."""
    body = TEAM_MARKER + b"\x04\x00\x00\x00" + b"\x01" * 12 + body_string("Alpha") + b"\x00" * 8
    with pytest.raises(PatternNotFoundError):
        scan_players(_cursor(body), [])


def test_missing_unknown_marker_is_fatal():
    """A record without its trailing unknown block aborts the scan."""
    body = player_record("Alpha", "profile-a", 4)
    body = body[: body.index(UNKNOWN_MARKER)]
    with pytest.raises(PatternNotFoundError):
        scan_players(_cursor(body), [])


def test_truncated_record_is_fatal():
    """A stream ending inside the skipped field raises UnexpectedEOFError."""
    with pytest.raises(UnexpectedEOFError):
        scan_players(_cursor(TEAM_MARKER + b"\x04\x00\x00\x00" + b"\x01" * 5), [])


def test_scan_players_forwards_unknown_blocks_and_flushes():
    """Each record's 30-byte block reaches the collector, followed by one flush."""

    class RecordingCollector:
        def __init__(self):
            self.pushed: list[tuple[str, bytes]] = []
            self.flushes = 0

        def push(self, username: str, block: bytes) -> None:
            self.pushed.append((username, block))

        def flush(self) -> None:
            self.flushes += 1

    collector = RecordingCollector()
    body = player_record("Alpha", "profile-a", 4, unknown=bytes(range(30))) + player_record("Bravo", "profile-b", 5)

    scan_players(_cursor(body), [], collector)

    assert collector.pushed == [("Alpha", bytes(range(30))), ("Bravo", b"\xab" * 30)]
    assert collector.flushes == 1


def test_failing_collector_never_fails_the_scan(caplog: pytest.LogCaptureFixture):
    """Collector exceptions are logged and the scan carries on."""

    class BrokenCollector:
        def push(self, username: str, block: bytes) -> None:
            raise RuntimeError("push failed")

        def flush(self) -> None:
            raise RuntimeError("flush failed")

    players: list[Player] = []
    with caplog.at_level(logging.ERROR):
        scan_players(_cursor(player_record("Alpha", "profile-a", 4)), players, BrokenCollector())

    assert [p.username for p in players] == ["Alpha"]
    assert "collector failed" in caplog.text


def test_reconcile_player_returns_matched_or_new_player():
    """reconcile_player returns the entry it updated or appended."""
    players = [Player(username="Alpha")]
    assert reconcile_player(players, "Alpha", "pa", 1) is players[0]
    created = reconcile_player(players, "Bravo", "pb", 0)
    assert players[-1] is created
    assert (created.username, created.profile_id, created.team_index) == ("Bravo", "pb", 0)


def test_in_memory_store_groups_blocks_and_clears_on_flush():
    """The default collector keeps blocks per username until flushed."""
    store = InMemoryUnknownBlockStore()
    store.push("Alpha", b"\x01")
    store.push("Bravo", b"\x02")
    store.push("Alpha", b"\x03")

    assert store.usernames == ["Alpha", "Bravo"]
    assert store.get("Alpha") == [b"\x01", b"\x03"]
    assert store.get("Charlie") is None
    assert list(store.iter_blocks()) == [("Alpha", b"\x01"), ("Alpha", b"\x03"), ("Bravo", b"\x02")]

    store.flush()
    assert store.usernames == []
