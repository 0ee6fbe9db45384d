"""
Player identity records in the body of a dissect payload.

Each record is located by markers rather than framing:

  TEAM_MARKER        int32 team indicator, 12 unparsed bytes, username (body string)
  PROFILE_ID_MARKER  profile id (body string)
  UNKNOWN_MARKER     30 unparsed bytes
"""
import logging

from ..schemas.schemas import Player
from ..schemas.store import UnknownBlockCollector
from .byte_cursor import ByteCursor
from .core import PatternNotFoundError
from .parser_utils import ensure_str
from .primitives import read_int, read_string

logger = logging.getLogger(__name__)

TEAM_MARKER = bytes([0x22, 0x95, 0x1C, 0x16, 0x50, 0x08])
PROFILE_ID_MARKER = bytes([0x8A, 0x50, 0x9B, 0xD0])
UNKNOWN_MARKER = bytes([0x22, 0xEE, 0xD4, 0x45, 0xC8, 0x08])

MAX_PLAYERS = 10
SKIPPED_FIELD_SIZE = 12
UNKNOWN_BLOCK_SIZE = 30


def team_index_from_indicator(indicator: int) -> int:
    """Even indicators belong to team 1, odd ones to team 0."""
    return 1 if indicator % 2 == 0 else 0


def reconcile_player(players: list[Player], username: bytes | str, profile_id: str, team_index: int) -> Player:
    """Update the player with this username in place, or append a new one."""
    raw = username.encode("utf-8") if isinstance(username, str) else bytes(username)
    for player in players:
        if player.username_bytes == raw:
            player.profile_id = profile_id
            player.team_index = team_index
            return player

    player = Player(username=ensure_str(raw), profile_id=profile_id, team_index=team_index).bind_raw_username(raw)
    players.append(player)
    return player


def merge_duplicate_players(players: list[Player]) -> list[Player]:
    """Fold later entries that share a username into the first one, in place.

    Fields still empty on the first entry are filled from the later ones.
    Players without a username are never merged.
    """
    first_by_name: dict[bytes, Player] = {}
    kept: list[Player] = []
    for player in players:
        key = player.username_bytes
        first = first_by_name.get(key) if key else None
        if first is None:
            if key:
                first_by_name[key] = player
            kept.append(player)
            continue

        for name, value in player:
            if getattr(first, name) in ("", None):
                setattr(first, name, value)
        logger.debug("merged duplicate player username=%s id=%s into id=%s", player.username, player.id, first.id)

    players[:] = kept
    return players


def _push_unknown(collector: UnknownBlockCollector | None, username: str, block: bytes) -> None:
    if collector is None:
        return
    try:
        collector.push(username, block)
    except Exception:
        logger.exception("Unknown block collector failed for %s", username)


def _flush_unknown(collector: UnknownBlockCollector | None) -> None:
    if collector is None:
        return
    try:
        collector.flush()
    except Exception:
        logger.exception("Unknown block collector failed to flush")


def scan_players(cursor: ByteCursor, players: list[Player], collector: UnknownBlockCollector | None = None) -> list[Player]:
    """Scan the rest of the stream for player records and merge them into `players`."""
    for _ in range(MAX_PLAYERS):
        try:
            cursor.seek(TEAM_MARKER)
        except PatternNotFoundError:
            break

        team_index = team_index_from_indicator(read_int(cursor))
        cursor.read(SKIPPED_FIELD_SIZE)
        raw_username = read_string(cursor)

        cursor.seek(PROFILE_ID_MARKER)
        profile_id = ensure_str(read_string(cursor))

        player = reconcile_player(players, raw_username, profile_id, team_index)
        logger.debug("player username=%s team_index=%d profile_id=%s", player.username, team_index, profile_id)

        cursor.seek(UNKNOWN_MARKER)
        _push_unknown(collector, player.username, cursor.read(UNKNOWN_BLOCK_SIZE))

    merge_duplicate_players(players)
    _flush_unknown(collector)
    return players
