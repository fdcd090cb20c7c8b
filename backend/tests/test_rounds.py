import pytest

from mindmeld.game.constants import ENDED
from mindmeld.game.errors import (
    GameInProgressError,
    InvalidWordError,
    NoActiveRoundError,
    NotYourTurnError,
)
from mindmeld.game.models import GameSettings
from mindmeld.game.service import LobbyManager

from conftest import ManualScheduler


def play_round(manager, first, second, words):
    manager.submit_word(first, words[0])
    return manager.submit_word(second, words[1])


def test_matching_words_ignore_case(manager, started_lobby):
    pending = manager.submit_word("p1", "Apple")
    assert pending.pending

    result = manager.submit_word("p2", "  apple ")
    outcome = result.outcome

    assert outcome.round_summary.success is True
    assert outcome.round_summary.failure_reason is None
    assert started_lobby.teams[0].score == 1
    assert started_lobby.next_prompt is None
    assert outcome.next_round.number == 2
    assert outcome.next_round.active_team_id == "team-2"
    assert outcome.next_round.prompt.type == "hidden-word"
    assert started_lobby.current_round is outcome.next_round


def test_mismatch_chains_word_pair_into_next_round(manager, started_lobby):
    outcome = play_round(manager, "p1", "p2", ("Apple", "Orange")).outcome

    assert outcome.round_summary.success is False
    assert outcome.round_summary.failure_reason == "mismatch"
    assert started_lobby.teams[0].score == 0
    assert outcome.next_round.prompt.type == "word-pair"
    assert outcome.next_round.prompt.value == ["Apple", "Orange"]
    assert started_lobby.next_prompt is None


def test_history_keeps_its_own_prompt_copy(manager, started_lobby):
    play_round(manager, "p1", "p2", ("Apple", "Orange"))
    pair_round = started_lobby.current_round
    play_round(manager, "p3", "p4", ("Fruit", "Fruit"))

    pair_round.prompt.value.append("Pear")

    first, second = started_lobby.round_history
    assert first.prompt.value == "Apple"
    assert second.prompt.value == ["Apple", "Orange"]
    assert second.success is True
    assert second.submissions[0].player_name == "Cleo"
    assert len(started_lobby.word_chain) == 2


def test_submit_twice_keeps_first_word(manager, started_lobby):
    manager.submit_word("p1", "Apple")
    result = manager.submit_word("p1", "Banana")

    assert result.already_submitted
    assert started_lobby.current_round.submissions["p1"] == "Apple"


def test_submit_rejects_wrong_team(manager, started_lobby):
    with pytest.raises(NotYourTurnError):
        manager.submit_word("p3", "Apple")


@pytest.mark.parametrize("word", ["", "   ", None, 42])
def test_submit_rejects_blank_word(manager, started_lobby, word):
    with pytest.raises(InvalidWordError):
        manager.submit_word("p1", word)
    assert started_lobby.current_round.submissions == {}


def test_submit_without_game(manager, full_lobby):
    with pytest.raises(NoActiveRoundError):
        manager.submit_word("p1", "Apple")
    with pytest.raises(NoActiveRoundError):
        manager.submit_word("stranger", "Apple")


def test_timeout_with_partial_submissions(manager, scheduler, started_lobby):
    calls = []
    manager.set_round_timeout_listener(calls.append)
    manager.submit_word("p1", "Apple")

    scheduler.active[0].fire()

    record = started_lobby.round_history[0]
    assert record.success is False
    assert record.failure_reason == "timeout"
    assert [(s.player_id, s.word) for s in record.submissions] == [("p1", "Apple"), ("p2", None)]
    assert started_lobby.current_round.prompt.type == "hidden-word"
    assert started_lobby.current_round.active_team_id == "team-2"

    assert len(calls) == 1
    assert calls[0].round_summary is record
    assert calls[0].next_round is started_lobby.current_round
    assert calls[0].game_ended is False


def test_listener_registration_replaces_previous(manager, scheduler, started_lobby):
    first, second = [], []
    manager.set_round_timeout_listener(first.append)
    manager.set_round_timeout_listener(second.append)

    scheduler.active[0].fire()

    assert first == []
    assert len(second) == 1


def test_stale_timer_does_not_touch_next_round(manager, scheduler, started_lobby):
    first_timer = scheduler.active[0]
    play_round(manager, "p1", "p2", ("Apple", "apple"))
    assert first_timer.cancelled

    # Simulate a callback that slipped past cancellation.
    first_timer.callback()

    assert started_lobby.current_round.number == 2
    assert len(started_lobby.round_history) == 1


def test_stale_timer_does_not_fail_restarted_game(manager, scheduler, started_lobby):
    first_timer = scheduler.active[0]
    manager.leave_lobby("p4")
    manager.join_lobby("p5", "Eve", started_lobby.code)
    manager.start_game(started_lobby.code)
    current_timer = scheduler.active[0]

    first_timer.callback()

    assert started_lobby.round_history == []
    assert started_lobby.current_round.number == 1
    assert started_lobby.current_round.status == "in-progress"
    assert not current_timer.cancelled

    current_timer.fire()
    assert started_lobby.round_history[0].failure_reason == "timeout"


def test_each_round_arms_a_fresh_timer(manager, scheduler, started_lobby):
    play_round(manager, "p1", "p2", ("Apple", "apple"))
    assert len(scheduler.timers) == 2
    assert len(scheduler.active) == 1


def test_zero_timeout_disables_timers(clock):
    scheduler = ManualScheduler()
    manager = LobbyManager(
        GameSettings(points_to_win=3, max_rounds=10, submission_timeout_ms=0),
        scheduler=scheduler,
        words=["Apple"],
        clock=clock,
    )
    code = manager.create_lobby("p1", "Ada").lobby.code
    for pid in ("p2", "p3", "p4"):
        manager.join_lobby(pid, pid, code)
    manager.start_game(code)

    assert scheduler.timers == []


def test_force_failure_default_and_custom_reason(manager, started_lobby):
    outcome = manager.force_round_failure(started_lobby.code)
    assert outcome.round_summary.failure_reason == "timeout"

    manager.submit_word("p3", "Kite")
    outcome = manager.force_round_failure(started_lobby.code, "admin")
    assert outcome.round_summary.failure_reason == "admin"
    assert started_lobby.round_history[1].submissions[1].word is None
    assert started_lobby.current_round.prompt.type == "hidden-word"


def test_force_failure_requires_active_round(manager, full_lobby):
    assert manager.force_round_failure(full_lobby.code, "admin") is None
    assert manager.force_round_failure("NOPE1", "admin") is None


def test_forced_failure_with_all_words_still_chains_pair(manager, started_lobby):
    manager.submit_word("p1", "Apple")
    started_lobby.current_round.submissions["p2"] = "Pear"

    manager.force_round_failure(started_lobby.code, "admin")

    assert started_lobby.current_round.prompt.value == ["Apple", "Pear"]


def test_team_reaching_points_to_win_ends_game(manager, scheduler, started_lobby):
    outcome = None
    for _ in range(3):
        play_round(manager, "p1", "p2", ("Apple", "apple"))
        if started_lobby.status == ENDED:
            break
        outcome = play_round(manager, "p3", "p4", ("Left", "Right")).outcome

    assert started_lobby.status == ENDED
    assert started_lobby.current_round is None
    assert started_lobby.teams[0].score == 3
    assert outcome.game_ended is False

    summary = started_lobby.game_summary
    assert [t.id for t in summary.leaderboard] == ["team-1", "team-2"]
    assert [t.score for t in summary.leaderboard] == [3, 0]
    assert [t.id for t in summary.winners] == ["team-1"]
    assert summary.rounds_played == 5
    assert summary.points_to_win == 3
    assert scheduler.active == []

    with pytest.raises(NoActiveRoundError):
        manager.submit_word("p3", "Apple")
    assert manager.force_round_failure(started_lobby.code) is None


def test_winning_submission_reports_game_end(manager, settings, started_lobby):
    started_lobby.teams[0].score = settings.points_to_win - 1
    result = play_round(manager, "p1", "p2", ("Apple", "APPLE"))

    assert result.outcome.game_ended is True
    assert result.outcome.next_round is None
    assert result.outcome.game_summary is started_lobby.game_summary


def test_round_limit_ends_game_with_tied_winners(clock):
    manager = LobbyManager(
        GameSettings(points_to_win=5, max_rounds=2, submission_timeout_ms=1000),
        scheduler=ManualScheduler(),
        words=["Apple"],
        clock=clock,
    )
    lobby = manager.create_lobby("p1", "Ada").lobby
    for pid in ("p2", "p3", "p4"):
        manager.join_lobby(pid, pid, lobby.code)
    manager.start_game(lobby.code)

    play_round(manager, "p1", "p2", ("a", "b"))
    outcome = play_round(manager, "p3", "p4", ("c", "d")).outcome

    assert outcome.game_ended
    assert lobby.status == ENDED
    assert len(lobby.round_history) == 2
    assert [t.id for t in lobby.game_summary.winners] == ["team-1", "team-2"]


def test_ended_game_cannot_be_started_again(manager, started_lobby):
    started_lobby.teams[0].score = 2
    play_round(manager, "p1", "p2", ("Apple", "apple"))

    assert started_lobby.status == ENDED
    with pytest.raises(GameInProgressError):
        manager.start_game(started_lobby.code)
