"""Payload builders for lobby state.

Player views hide a hidden-word prompt and teammates' words from anyone
outside the active team. Admin views and persistence snapshots are
unfiltered.
"""

from __future__ import annotations

from .models import Lobby, Player, Prompt, Round


def round_time_remaining(lobby: Lobby, now: int) -> int | None:
    rnd = lobby.current_round
    if rnd is None:
        return None
    elapsed = now - rnd.started_at_ms
    return max(0, lobby.settings.submission_timeout_ms - elapsed)


def team_views(lobby: Lobby) -> list[dict]:
    teams = []
    for team in lobby.teams:
        members = [lobby.players[pid] for pid in team.players if pid in lobby.players]
        teams.append(
            {
                "id": team.id,
                "name": team.name,
                "score": team.score,
                "players": [p.public_dict() for p in members],
            }
        )
    return teams


def prompt_view(prompt: Prompt, is_active_team_member: bool) -> dict:
    if prompt.is_hidden:
        return {"type": prompt.type, "value": prompt.value if is_active_team_member else None}
    # Word pairs come from a mismatch everyone already saw.
    return prompt.to_dict()


def current_round_view(lobby: Lobby, viewer: Player | None, now: int) -> dict | None:
    rnd = lobby.current_round
    if rnd is None:
        return None

    is_active = viewer is not None and viewer.team_id == rnd.active_team_id
    team = lobby.find_team(rnd.active_team_id)
    member_ids = team.players if team else []

    submissions = {}
    for pid in member_ids:
        word = rnd.submissions.get(pid)
        submitted = bool(word)
        submissions[pid] = {"submitted": submitted, "word": word if is_active and submitted else None}

    return {
        "number": rnd.number,
        "activeTeamId": rnd.active_team_id,
        "prompt": prompt_view(rnd.prompt, is_active),
        "submissions": submissions,
        "status": rnd.status,
        "startedAtMs": rnd.started_at_ms,
        "timeRemainingMs": round_time_remaining(lobby, now),
    }


def player_view(lobby: Lobby, viewer_id: str | None, now: int) -> dict:
    viewer = lobby.players.get(viewer_id) if viewer_id else None
    return {
        "code": lobby.code,
        "status": lobby.status,
        "hostId": lobby.host_id,
        "teams": team_views(lobby),
        "config": lobby.settings.to_dict(),
        "currentRound": current_round_view(lobby, viewer, now),
        "roundHistory": [r.to_dict() for r in lobby.round_history],
        "gameSummary": lobby.game_summary.to_dict() if lobby.game_summary else None,
    }


def _admin_round(lobby: Lobby, rnd: Round, now: int) -> dict:
    return {
        "number": rnd.number,
        "activeTeamId": rnd.active_team_id,
        "prompt": rnd.prompt.to_dict(),
        "submissions": dict(rnd.submissions),
        "startedAtMs": rnd.started_at_ms,
        "status": rnd.status,
        "failureReason": rnd.failure_reason,
        "timeRemainingMs": round_time_remaining(lobby, now),
    }


def admin_view(lobby: Lobby, now: int, include_history: bool = True) -> dict:
    payload = {
        "code": lobby.code,
        "status": lobby.status,
        "hostId": lobby.host_id,
        "createdAtMs": lobby.created_at_ms,
        "updatedAtMs": lobby.updated_at_ms,
        "config": lobby.settings.to_dict(),
        "teams": team_views(lobby),
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "teamId": p.team_id,
                "isHost": p.is_host,
                "joinedAtMs": p.joined_at_ms,
            }
            for p in lobby.players.values()
        ],
        "currentRound": _admin_round(lobby, lobby.current_round, now) if lobby.current_round else None,
        "gameSummary": lobby.game_summary.to_dict() if lobby.game_summary else None,
    }
    if include_history:
        payload["roundHistory"] = [r.to_dict() for r in lobby.round_history]
        payload["wordChain"] = list(lobby.word_chain)
    return payload


def lobby_snapshot(lobby: Lobby) -> dict:
    """Full, JSON-ready copy of a lobby for the persistence store."""
    payload = admin_view(lobby, now=lobby.updated_at_ms, include_history=True)
    payload.update(
        {
            "turnOrder": list(lobby.turn_order),
            "turnCursor": lobby.turn_cursor,
            "nextPrompt": lobby.next_prompt.to_dict() if lobby.next_prompt else None,
        }
    )
    return payload
