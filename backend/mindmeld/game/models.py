from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Literal

from .constants import (
    DEFAULT_TEAM_NAMES,
    HIDDEN_WORD,
    MAX_TEAMS,
    ROUND_IN_PROGRESS,
    TEAM_SIZE,
    WAITING,
    WORD_PAIR,
)


LobbyStatus = Literal["waiting", "in-progress", "ended"]
RoundStatus = Literal["in-progress", "completed"]
PromptType = Literal["hidden-word", "word-pair"]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GameSettings:
    points_to_win: int = 5
    max_rounds: int = 20
    submission_timeout_ms: int = 10_000
    team_size: int = TEAM_SIZE
    max_teams: int = MAX_TEAMS

    def to_dict(self) -> dict:
        return {
            "pointsToWin": self.points_to_win,
            "maxRounds": self.max_rounds,
            "submissionTimeoutMs": self.submission_timeout_ms,
            "teamSize": self.team_size,
            "maxTeams": self.max_teams,
        }


@dataclass
class Prompt:
    type: PromptType
    value: str | list[str]

    @classmethod
    def hidden_word(cls, word: str) -> "Prompt":
        return cls(type=HIDDEN_WORD, value=word)

    @classmethod
    def word_pair(cls, first: str, second: str) -> "Prompt":
        return cls(type=WORD_PAIR, value=[first, second])

    @property
    def is_hidden(self) -> bool:
        return self.type == HIDDEN_WORD

    def clone(self) -> "Prompt":
        value = list(self.value) if isinstance(self.value, list) else self.value
        return Prompt(type=self.type, value=value)

    def to_dict(self) -> dict:
        value = list(self.value) if isinstance(self.value, list) else self.value
        return {"type": self.type, "value": value}


@dataclass
class Player:
    id: str
    name: str
    team_id: str | None = None
    is_host: bool = False
    joined_at_ms: int = 0

    def public_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "isHost": self.is_host}


@dataclass
class Team:
    id: str
    name: str
    players: list[str] = field(default_factory=list)
    score: int = 0


@dataclass
class Round:
    number: int
    active_team_id: str
    prompt: Prompt
    # Missing key: not yet checked. None: checked, nothing submitted.
    submissions: dict[str, str | None] = field(default_factory=dict)
    status: RoundStatus = ROUND_IN_PROGRESS
    started_at_ms: int = 0
    completed_at_ms: int | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class SubmissionRecord:
    player_id: str
    player_name: str | None
    word: str | None

    def to_dict(self) -> dict:
        return {"playerId": self.player_id, "playerName": self.player_name, "word": self.word}


@dataclass(frozen=True)
class RoundRecord:
    """A resolved round. Appended to the lobby history once and never changed."""

    number: int
    team_id: str
    team_name: str
    prompt: Prompt
    submissions: tuple[SubmissionRecord, ...]
    success: bool
    failure_reason: str | None
    completed_at_ms: int

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "teamId": self.team_id,
            "teamName": self.team_name,
            "prompt": self.prompt.to_dict(),
            "submissions": [s.to_dict() for s in self.submissions],
            "success": self.success,
            "failureReason": self.failure_reason,
            "completedAtMs": self.completed_at_ms,
        }


@dataclass(frozen=True)
class TeamStanding:
    id: str
    name: str
    score: int

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "score": self.score}


@dataclass(frozen=True)
class GameSummary:
    leaderboard: tuple[TeamStanding, ...]
    winners: tuple[TeamStanding, ...]
    rounds_played: int
    points_to_win: int

    def to_dict(self) -> dict:
        return {
            "leaderboard": [t.to_dict() for t in self.leaderboard],
            "winners": [t.to_dict() for t in self.winners],
            "roundsPlayed": self.rounds_played,
            "pointsToWin": self.points_to_win,
        }


@dataclass
class Lobby:
    code: str
    settings: GameSettings
    host_id: str | None = None
    status: LobbyStatus = WAITING
    created_at_ms: int = 0
    updated_at_ms: int = 0
    teams: list[Team] = field(default_factory=list)
    players: dict[str, Player] = field(default_factory=dict)
    turn_order: list[str] = field(default_factory=list)
    turn_cursor: int = 0
    current_round: Round | None = None
    round_history: list[RoundRecord] = field(default_factory=list)
    next_prompt: Prompt | None = None
    word_chain: list[dict] = field(default_factory=list)
    game_summary: GameSummary | None = None

    def find_team(self, team_id: str | None) -> Team | None:
        for team in self.teams:
            if team.id == team_id:
                return team
        return None

    def touch(self) -> None:
        self.updated_at_ms = now_ms()


def create_player(player_id: str, name: str, is_host: bool = False) -> Player:
    return Player(id=player_id, name=name.strip(), is_host=is_host, joined_at_ms=now_ms())


def create_team(team_id: str, name: str) -> Team:
    return Team(id=team_id, name=name)


def create_default_teams() -> list[Team]:
    return [create_team(f"team-{index + 1}", name) for index, name in enumerate(DEFAULT_TEAM_NAMES)]


def create_lobby(code: str, settings: GameSettings, host_id: str | None) -> Lobby:
    created = now_ms()
    return Lobby(
        code=code,
        settings=settings,
        host_id=host_id,
        created_at_ms=created,
        updated_at_ms=created,
        teams=create_default_teams(),
    )
