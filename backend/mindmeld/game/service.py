from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Protocol, Sequence

from ..utils.codes import generate_code
from .constants import (
    ENDED,
    IN_PROGRESS,
    MISMATCH,
    ROUND_COMPLETED,
    TIMEOUT,
    WAITING,
)
from .errors import (
    AlreadyInLobbyError,
    GameInProgressError,
    InvalidNameError,
    InvalidWordError,
    LobbyFullError,
    LobbyNotFoundError,
    NoActiveRoundError,
    NotEnoughTeamsError,
    NotYourTurnError,
    PlayerNotFoundError,
    RegistryClosedError,
)
from .models import (
    GameSettings,
    GameSummary,
    Lobby,
    Player,
    Prompt,
    Round,
    RoundRecord,
    SubmissionRecord,
    Team,
    TeamStanding,
    create_lobby,
    create_player,
    now_ms,
)
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle
from .views import admin_view, lobby_snapshot, player_view, round_time_remaining
from .words import pick_word

logger = logging.getLogger(__name__)


class LobbyStore(Protocol):
    def save_lobby(self, snapshot: dict) -> None: ...

    def delete_lobby(self, code: str) -> None: ...


@dataclass
class JoinResult:
    lobby: Lobby
    player: Player


@dataclass
class LeaveResult:
    lobby_code: str
    lobby: Lobby | None
    removed: bool
    player_id: str


@dataclass
class StartResult:
    lobby: Lobby
    round: Round


@dataclass
class RoundOutcome:
    lobby: Lobby
    round_summary: RoundRecord
    next_round: Round | None = None
    game_ended: bool = False
    game_summary: GameSummary | None = None


@dataclass
class SubmitResult:
    lobby: Lobby
    round: Round
    already_submitted: bool = False
    pending: bool = False
    outcome: RoundOutcome | None = None


RoundTimeoutListener = Callable[[RoundOutcome], None]


def sanitize_word(value) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _clean_name(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidNameError()
    return value.strip()


class LobbyManager:
    """Owns every lobby, the player -> lobby index and the per-lobby round timers.

    All mutations run under one re-entrant lock, so request handlers and
    timer callbacks never interleave. Persistence writes are handed to a
    background executor and never awaited.
    """

    def __init__(
        self,
        settings: GameSettings | None = None,
        scheduler: Scheduler | None = None,
        store: LobbyStore | None = None,
        words: Sequence[str] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings or GameSettings()
        self._scheduler = scheduler or ThreadingScheduler()
        self._store = store
        self._words = words
        self._clock = clock

        self._lock = RLock()
        self._lobbies: dict[str, Lobby] = {}
        self._player_index: dict[str, str] = {}
        self._round_timers: dict[str, TimerHandle] = {}
        self._round_timeout_listener: RoundTimeoutListener | None = None

        self._executor: ThreadPoolExecutor | None = None
        self._pending_writes: set[Future] = set()
        self._closed = False

    # ---- collaborators ----

    def set_round_timeout_listener(self, listener: RoundTimeoutListener | None) -> None:
        """Register the single consumer of round timeouts, replacing any previous one."""
        self._round_timeout_listener = listener

    def _persist(self, lobby: Lobby) -> None:
        if self._store is None or self._closed:
            return
        snapshot = lobby_snapshot(lobby)
        self._dispatch(self._store.save_lobby, snapshot, action="persist", code=lobby.code)

    def _remove_snapshot(self, code: str) -> None:
        if self._store is None or self._closed:
            return
        self._dispatch(self._store.delete_lobby, code, action="remove", code=code)

    def _dispatch(self, fn, arg, action: str, code: str) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lobby-store")

        def _run() -> None:
            try:
                fn(arg)
            except Exception as exc:
                logger.error(f"Failed to {action} lobby snapshot {code}: {exc}")

        future = self._executor.submit(_run)
        self._pending_writes.add(future)
        future.add_done_callback(self._pending_writes.discard)

    # ---- timers ----

    def _clear_round_timeout(self, code: str) -> None:
        handle = self._round_timers.pop(code, None)
        if handle is not None:
            handle.cancel()

    def _schedule_round_timeout(self, lobby: Lobby) -> None:
        timeout_ms = lobby.settings.submission_timeout_ms
        if timeout_ms <= 0 or lobby.current_round is None:
            return

        self._clear_round_timeout(lobby.code)
        code = lobby.code
        number = lobby.current_round.number
        handle: TimerHandle | None = None

        def fire() -> None:
            self._handle_round_timeout(code, number, handle)

        handle = self._scheduler.schedule(timeout_ms / 1000, fire)
        self._round_timers[code] = handle

    def _handle_round_timeout(self, code: str, round_number: int, handle: TimerHandle | None) -> None:
        with self._lock:
            if self._closed:
                return
            # A cancelled timer may still fire; only the armed one counts.
            if handle is None or self._round_timers.get(code) is not handle:
                return
            lobby = self._lobbies.get(code)
            rnd = lobby.current_round if lobby else None
            if rnd is None or rnd.number != round_number:
                return
            self._round_timers.pop(code, None)
            outcome = self.force_round_failure(code, TIMEOUT)

        if outcome is None:
            return
        logger.info(f"Round {round_number} timed out in lobby {code}")
        listener = self._round_timeout_listener
        if listener is None:
            return
        try:
            listener(outcome)
        except Exception:
            logger.exception(f"Round timeout listener failed for lobby {code}")

    # ---- lookups ----

    def get_lobby(self, code: str) -> Lobby | None:
        with self._lock:
            return self._lobbies.get(code)

    def get_lobby_for_player(self, player_id: str) -> Lobby | None:
        with self._lock:
            code = self._player_index.get(player_id)
            return self._lobbies.get(code) if code else None

    def get_team_players(self, code: str, team_id: str) -> list[Player]:
        with self._lock:
            lobby = self._lobbies.get(code)
            team = lobby.find_team(team_id) if lobby else None
            if team is None:
                return []
            return [lobby.players[pid] for pid in team.players if pid in lobby.players]

    def get_round_time_remaining(self, lobby: Lobby) -> int | None:
        return round_time_remaining(lobby, self._clock())

    # ---- lifecycle ----

    def _ensure_open(self) -> None:
        if self._closed:
            raise RegistryClosedError()

    def create_lobby(self, player_id: str, player_name: str) -> JoinResult:
        with self._lock:
            self._ensure_open()
            name = _clean_name(player_name)
            if player_id in self._player_index:
                raise AlreadyInLobbyError()

            code = generate_code(self._lobbies.keys())
            lobby = create_lobby(code, self.settings, host_id=player_id)

            host = create_player(player_id, name, is_host=True)
            first_team = lobby.teams[0]
            host.team_id = first_team.id
            first_team.players.append(player_id)
            lobby.players[player_id] = host
            lobby.turn_order = [team.id for team in lobby.teams]

            self._lobbies[code] = lobby
            self._player_index[player_id] = code

            logger.info(f"Lobby {code} created by {player_id}")
            self._persist(lobby)
            return JoinResult(lobby=lobby, player=host)

    def join_lobby(self, player_id: str, player_name: str, code: str) -> JoinResult:
        with self._lock:
            self._ensure_open()
            lobby = self._lobbies.get(code)
            if lobby is None:
                raise LobbyNotFoundError()
            if lobby.status != WAITING:
                raise GameInProgressError()

            existing = lobby.players.get(player_id)
            if existing is not None:
                return JoinResult(lobby=lobby, player=existing)

            name = _clean_name(player_name)
            if player_id in self._player_index:
                raise AlreadyInLobbyError()

            team = next((t for t in lobby.teams if len(t.players) < lobby.settings.team_size), None)
            if team is None:
                raise LobbyFullError()

            player = create_player(player_id, name)
            player.team_id = team.id
            lobby.players[player_id] = player
            team.players.append(player_id)
            lobby.touch()
            self._player_index[player_id] = code

            logger.info(f"Player {player_id} joined lobby {code} on {team.id}")
            self._persist(lobby)
            return JoinResult(lobby=lobby, player=player)

    def leave_lobby(self, player_id: str) -> LeaveResult | None:
        with self._lock:
            self._ensure_open()
            code = self._player_index.get(player_id)
            if code is None:
                return None

            lobby = self._lobbies.get(code)
            player = lobby.players.get(player_id) if lobby else None
            if player is None:
                self._player_index.pop(player_id, None)
                return None

            team = lobby.find_team(player.team_id)
            if team is not None and player_id in team.players:
                team.players.remove(player_id)
            del lobby.players[player_id]
            del self._player_index[player_id]

            if player.is_host:
                self._promote_next_host(lobby)

            if not lobby.players:
                self._clear_round_timeout(code)
                del self._lobbies[code]
                logger.info(f"Lobby {code} removed after last player left")
                self._remove_snapshot(code)
                return LeaveResult(lobby_code=code, lobby=None, removed=True, player_id=player_id)

            self._pause_if_short_handed(lobby)
            lobby.touch()

            logger.info(f"Player {player_id} left lobby {code}")
            self._persist(lobby)
            return LeaveResult(lobby_code=code, lobby=lobby, removed=False, player_id=player_id)

    def handle_disconnect(self, player_id: str) -> LeaveResult | None:
        return self.leave_lobby(player_id)

    def _promote_next_host(self, lobby: Lobby) -> None:
        successor = next(iter(lobby.players.values()), None)
        if successor is None:
            lobby.host_id = None
            return
        successor.is_host = True
        lobby.host_id = successor.id

    def _pause_if_short_handed(self, lobby: Lobby) -> None:
        if lobby.status != IN_PROGRESS:
            return
        if all(len(team.players) >= lobby.settings.team_size for team in lobby.teams):
            return

        lobby.status = WAITING
        lobby.current_round = None
        lobby.game_summary = None
        self._clear_round_timeout(lobby.code)
        logger.warning(f"Game paused in lobby {lobby.code}: a team is missing players")

    def start_game(self, code: str) -> StartResult:
        with self._lock:
            self._ensure_open()
            lobby = self._lobbies.get(code)
            if lobby is None:
                raise LobbyNotFoundError()
            if lobby.status != WAITING:
                raise GameInProgressError("Game already started.")

            filled = [t for t in lobby.teams if len(t.players) == lobby.settings.team_size]
            if len(filled) < 2:
                raise NotEnoughTeamsError()

            for team in lobby.teams:
                team.score = 0
            lobby.turn_order = [t.id for t in filled]
            lobby.turn_cursor = 0
            lobby.status = IN_PROGRESS
            lobby.round_history = []
            lobby.game_summary = None
            lobby.next_prompt = None
            lobby.word_chain = []

            rnd = self._create_next_round(lobby)
            lobby.current_round = rnd
            lobby.touch()
            self._schedule_round_timeout(lobby)
            self._persist(lobby)

            logger.info(f"Game started in lobby {code}")
            return StartResult(lobby=lobby, round=rnd)

    # ---- rounds ----

    def _create_next_round(self, lobby: Lobby) -> Round:
        active_team_id = lobby.turn_order[lobby.turn_cursor]
        if lobby.next_prompt is not None:
            prompt = lobby.next_prompt.clone()
        else:
            prompt = Prompt.hidden_word(pick_word(self._words))
        lobby.next_prompt = None

        return Round(
            number=len(lobby.round_history) + 1,
            active_team_id=active_team_id,
            prompt=prompt,
            started_at_ms=self._clock(),
        )

    def submit_word(self, player_id: str, word) -> SubmitResult:
        with self._lock:
            self._ensure_open()
            lobby = self.get_lobby_for_player(player_id)
            if lobby is None or lobby.status != IN_PROGRESS or lobby.current_round is None:
                raise NoActiveRoundError()

            player = lobby.players.get(player_id)
            if player is None:
                raise PlayerNotFoundError()

            rnd = lobby.current_round
            if player.team_id != rnd.active_team_id:
                raise NotYourTurnError()

            cleaned = sanitize_word(word)
            if cleaned is None:
                raise InvalidWordError()

            if rnd.submissions.get(player_id):
                return SubmitResult(lobby=lobby, round=rnd, already_submitted=True)

            rnd.submissions[player_id] = cleaned

            team = lobby.find_team(rnd.active_team_id)
            if not all(rnd.submissions.get(pid) for pid in team.players):
                self._persist(lobby)
                return SubmitResult(lobby=lobby, round=rnd, pending=True)

            outcome = self._resolve_round(lobby, team)
            return SubmitResult(lobby=lobby, round=rnd, outcome=outcome)

    def force_round_failure(self, code: str, reason: str = TIMEOUT) -> RoundOutcome | None:
        with self._lock:
            self._ensure_open()
            lobby = self._lobbies.get(code)
            if lobby is None or lobby.status != IN_PROGRESS or lobby.current_round is None:
                return None

            rnd = lobby.current_round
            team = lobby.find_team(rnd.active_team_id)
            if team is None:
                return None

            for pid in team.players:
                rnd.submissions.setdefault(pid, None)

            return self._resolve_round(lobby, team, forced=True, reason=reason)

    def _resolve_round(
        self,
        lobby: Lobby,
        team: Team,
        forced: bool = False,
        reason: str | None = None,
    ) -> RoundOutcome:
        rnd = lobby.current_round
        self._clear_round_timeout(lobby.code)

        submissions = tuple(
            SubmissionRecord(
                player_id=pid,
                player_name=lobby.players[pid].name if pid in lobby.players else None,
                word=rnd.submissions.get(pid),
            )
            for pid in team.players
        )
        words = [s.word for s in submissions if s.word]
        complete = bool(words) and len(words) == len(team.players)

        success = False
        if not forced and complete:
            anchor = words[0].lower()
            success = all(w.lower() == anchor for w in words)

        if success:
            team.score += 1

        failure_reason = None if success else (reason or MISMATCH)
        completed_at = now_ms()
        record = RoundRecord(
            number=rnd.number,
            team_id=team.id,
            team_name=team.name,
            prompt=rnd.prompt.clone(),
            submissions=submissions,
            success=success,
            failure_reason=failure_reason,
            completed_at_ms=completed_at,
        )
        lobby.round_history.append(record)
        lobby.word_chain.append(
            {"prompt": record.prompt.to_dict(), "submissions": [s.to_dict() for s in submissions]}
        )

        # A genuine mismatch becomes the next team's challenge.
        if not success and complete:
            lobby.next_prompt = Prompt.word_pair(*words)
        else:
            lobby.next_prompt = None

        rnd.status = ROUND_COMPLETED
        rnd.completed_at_ms = completed_at
        rnd.failure_reason = failure_reason
        lobby.current_round = None

        victory = team.score >= lobby.settings.points_to_win
        limit_reached = len(lobby.round_history) >= lobby.settings.max_rounds

        if victory or limit_reached:
            lobby.status = ENDED
            lobby.game_summary = self._build_game_summary(lobby)
            lobby.touch()
            self._persist(lobby)
            self._clear_round_timeout(lobby.code)
            logger.info(
                f"Game ended in lobby {lobby.code} (victory={victory}, round_limit={limit_reached})"
            )
            return RoundOutcome(
                lobby=lobby,
                round_summary=record,
                game_ended=True,
                game_summary=lobby.game_summary,
            )

        lobby.turn_cursor = (lobby.turn_cursor + 1) % len(lobby.turn_order)
        next_round = self._create_next_round(lobby)
        lobby.current_round = next_round
        lobby.touch()
        self._schedule_round_timeout(lobby)
        self._persist(lobby)
        return RoundOutcome(lobby=lobby, round_summary=record, next_round=next_round)

    def _build_game_summary(self, lobby: Lobby) -> GameSummary:
        leaderboard = sorted(
            (TeamStanding(id=t.id, name=t.name, score=t.score) for t in lobby.teams),
            key=lambda standing: standing.score,
            reverse=True,
        )
        top_score = leaderboard[0].score if leaderboard else 0
        return GameSummary(
            leaderboard=tuple(leaderboard),
            winners=tuple(t for t in leaderboard if t.score == top_score),
            rounds_played=len(lobby.round_history),
            points_to_win=lobby.settings.points_to_win,
        )

    # ---- views ----

    def serialize_lobby_for_player(self, code: str, player_id: str | None) -> dict | None:
        with self._lock:
            lobby = self._lobbies.get(code)
            if lobby is None:
                return None
            return player_view(lobby, player_id, self._clock())

    def serialize_lobby_for_admin(self, code: str, include_history: bool = True) -> dict | None:
        with self._lock:
            lobby = self._lobbies.get(code)
            if lobby is None:
                return None
            return admin_view(lobby, self._clock(), include_history=include_history)

    def list_lobbies_for_admin(self) -> list[dict]:
        with self._lock:
            now = self._clock()
            return [admin_view(lobby, now, include_history=False) for lobby in self._lobbies.values()]

    def get_stats(self) -> dict:
        with self._lock:
            statuses = [lobby.status for lobby in self._lobbies.values()]
        return {
            "lobbyCount": len(statuses),
            "waiting": statuses.count(WAITING),
            "inProgress": statuses.count(IN_PROGRESS),
            "ended": statuses.count(ENDED),
        }

    # ---- shutdown ----

    def shutdown(self, grace_sec: float = 5.0) -> bool:
        """Stop accepting operations and wait up to ``grace_sec`` for pending writes.

        Returns False when some writes were still running at the deadline.
        """
        with self._lock:
            self._closed = True
            for code in list(self._round_timers):
                self._clear_round_timeout(code)
            pending = list(self._pending_writes)
            executor = self._executor

        if executor is None:
            return True

        _, not_done = wait(pending, timeout=grace_sec)
        executor.shutdown(wait=False, cancel_futures=True)
        if not_done:
            logger.warning(f"Shutdown left {len(not_done)} lobby snapshot writes unfinished")
            return False
        return True
