from datetime import datetime

from pydantic import BaseModel, Field, PrivateAttr


class Player(BaseModel):
    id: str = ""
    profile_id: str = ""
    username: str = ""
    team_index: int | None = Field(default=None, ge=0, le=1)
    hero_name: int | None = None
    alliance: int | None = None
    role_image: int | None = None
    role_name: str = ""
    role_portrait: int | None = None

    _raw_username: bytes | None = PrivateAttr(default=None)

    @property
    def username_bytes(self) -> bytes:
        """Username exactly as stored in the file; `username` is its lossy text form."""
        if self._raw_username is not None:
            return self._raw_username
        return self.username.encode("utf-8")

    def bind_raw_username(self, raw: bytes) -> "Player":
        self._raw_username = bytes(raw)
        return self


class Team(BaseModel):
    name: str = ""
    score: int = Field(default=0, ge=0)


class MatchHeader(BaseModel):
    game_version: str = ""
    code_version: int
    timestamp: datetime
    match_type: int
    map: int
    game_mode: int
    recording_player_id: str = ""
    recording_profile_id: str = ""
    additional_tags: str = ""
    rounds_per_match: int = Field(ge=0)
    rounds_per_match_overtime: int = Field(ge=0)
    round_number: int = Field(ge=0)
    overtime_round_number: int = Field(ge=0)
    playlist_category: int | None = None
    match_id: str = ""
    teams: list[Team] = Field(min_length=2, max_length=2)
    gm_settings: list[int] = Field(default_factory=list)
    players: list[Player] = Field(default_factory=list)
