"""
Header region of a decompressed dissect payload.

Layout
------
  7 bytes   magic = "dissect"
  ...       versioning block, ends after the second run of 7 zero bytes
  pairs     key/value header strings until "teamscore1" has been read

Player records are not framed: a "playerid" key opens one, and the next
"playerid", "playlistcategory" or "id" key closes it.
"""
import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..schemas.schemas import MatchHeader, Player, Team
from .byte_cursor import ByteCursor
from .core import FieldParseError, InvalidFormatError
from .parser_utils import ensure_str, parse_int, validated
from .primitives import read_header_string

logger = logging.getLogger(__name__)

MAGIC = b"dissect"
ZERO_RUN_LENGTH = 7
ZERO_RUNS_BEFORE_PROPERTIES = 2

PLAYER_START_KEY = "playerid"
PLAYER_END_KEYS = frozenset({"playlistcategory", "id"})
GM_SETTING_KEY = "gmsetting"
LAST_PROPERTY_KEY = "teamscore1"

TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"
_TIMESTAMP_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}-[0-9]{2}-[0-9]{2}-[0-9]{2}")

# header key -> (Player field, parsed as int)
PLAYER_FIELDS: dict[str, tuple[str, bool]] = {
    "playerid": ("id", False),
    "playername": ("username", False),
    "team": ("team_index", True),
    "heroname": ("hero_name", True),
    "alliance": ("alliance", True),
    "roleimage": ("role_image", True),
    "rolename": ("role_name", False),
    "roleportrait": ("role_portrait", True),
}


class RecordState(Enum):
    HEADER = "header"
    PLAYER = "player"


def read_header_magic(cursor: ByteCursor) -> None:
    """Validate the magic and skip the versioning block that follows it."""
    magic = cursor.read(len(MAGIC))
    if magic != MAGIC:
        raise InvalidFormatError(f"Missing dissect magic, got {magic!r}")

    zeros = 0
    runs = 0
    while runs != ZERO_RUNS_BEFORE_PROPERTIES:
        if cursor.read(1)[0] == 0:
            zeros += 1
            if zeros == ZERO_RUN_LENGTH:
                zeros = 0
                runs += 1
        else:
            zeros = 0


def transition(state: RecordState, key: str) -> tuple[RecordState, bool]:
    """Return (next state, whether the in-progress player is finalized before `key` is applied)."""
    if key == PLAYER_START_KEY:
        return RecordState.PLAYER, state is RecordState.PLAYER
    if key in PLAYER_END_KEYS and state is RecordState.PLAYER:
        return RecordState.HEADER, True
    return state, False


class PropertyGrouper:
    """Accumulates header key/value pairs, splitting player records off the top-level properties."""

    def __init__(self) -> None:
        self.state = RecordState.HEADER
        self.props: dict[str, str] = {}
        self.gm_settings: list[int] = []
        self.players: list[Player] = []
        self._current: dict[str, Any] | None = None
        self._current_raw_username: bytes | None = None

    @property
    def done(self) -> bool:
        return LAST_PROPERTY_KEY in self.props

    def feed(self, key: str, value: str | bytes) -> None:
        next_state, finalize = transition(self.state, key)
        if finalize:
            self._finalize_player()
        if key == PLAYER_START_KEY:
            self._current = {}
            self._current_raw_username = None
        self.state = next_state

        if self.state is RecordState.HEADER:
            self._record_property(key, ensure_str(value))
        else:
            self._record_player_field(key, value)

    def _finalize_player(self) -> None:
        player = validated(Player, **(self._current or {}))
        if self._current_raw_username is not None:
            player.bind_raw_username(self._current_raw_username)
        self.players.append(player)
        self._current = None
        self._current_raw_username = None

    def _record_property(self, key: str, value: str) -> None:
        if key == GM_SETTING_KEY:
            self.gm_settings.append(parse_int(key, value))
        else:
            self.props[key] = value

    def _record_player_field(self, key: str, value: str | bytes) -> None:
        field = PLAYER_FIELDS.get(key)
        if field is None:
            return
        name, is_int = field
        text = ensure_str(value)
        if name == "username" and isinstance(value, (bytes, bytearray)):
            self._current_raw_username = bytes(value)
        self._current[name] = parse_int(key, text) if is_int else text


def read_header_properties(cursor: ByteCursor) -> PropertyGrouper:
    """Read key/value pairs until the last header property has been recorded."""
    grouper = PropertyGrouper()
    while not grouper.done:
        key = ensure_str(read_header_string(cursor))
        value = read_header_string(cursor)
        grouper.feed(key, value)
    return grouper


def _parse_timestamp(value: str | None) -> datetime:
    if value is None or not _TIMESTAMP_RE.fullmatch(value):
        raise FieldParseError("datetime", value or "")
    try:
        parsed = datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise FieldParseError("datetime", value) from exc
    return parsed.replace(tzinfo=timezone.utc)


def _parse_playlist_category(value: str | None) -> int | None:
    try:
        return parse_int("playlistcategory", value)
    except FieldParseError as exc:
        logger.debug("omitting playlistcategory: %s", exc)
        return None


def build_match_header(props: dict[str, str], gm_settings: list[int], players: list[Player]) -> MatchHeader:
    """Assemble the typed match header from the top-level property map."""
    return validated(
        MatchHeader,
        game_version=props.get("version", ""),
        code_version=parse_int("code", props.get("code")),
        timestamp=_parse_timestamp(props.get("datetime")),
        match_type=parse_int("matchtype", props.get("matchtype")),
        map=parse_int("worldid", props.get("worldid")),
        recording_player_id=props.get("recordingplayerid", ""),
        recording_profile_id=props.get("recordingprofileid", ""),
        additional_tags=props.get("additionaltags", ""),
        game_mode=parse_int("gamemodeid", props.get("gamemodeid")),
        rounds_per_match=parse_int("roundspermatch", props.get("roundspermatch")),
        rounds_per_match_overtime=parse_int("roundspermatchovertime", props.get("roundspermatchovertime")),
        round_number=parse_int("roundnumber", props.get("roundnumber")),
        overtime_round_number=parse_int("overtimeroundnumber", props.get("overtimeroundnumber")),
        playlist_category=_parse_playlist_category(props.get("playlistcategory")),
        match_id=props.get("id", ""),
        teams=[
            validated(Team, name=props.get("teamname0", ""), score=parse_int("teamscore0", props.get("teamscore0"))),
            validated(Team, name=props.get("teamname1", ""), score=parse_int("teamscore1", props.get("teamscore1"))),
        ],
        gm_settings=list(gm_settings),
        players=list(players),
    )


def read_header(cursor: ByteCursor) -> MatchHeader:
    """Read the header property stream (after the magic) into a MatchHeader."""
    grouper = read_header_properties(cursor)
    logger.debug(
        "Read %d header properties, %d gm setting(s), %d player(s) ending at offset %d",
        len(grouper.props),
        len(grouper.gm_settings),
        len(grouper.players),
        cursor.offset,
    )
    return build_match_header(grouper.props, grouper.gm_settings, grouper.players)
