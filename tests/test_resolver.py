"""Tests for match decisions, bracket progression and tournament close-out."""

import threading
from collections import Counter

import pytest

from tournaments import (
    AlreadyDecidedError,
    InsufficientRosterError,
    IntegrityViolationError,
    InvalidWinnerError,
    Match,
    MatchNotFoundError,
    TournamentClosedError,
    TournamentManager,
)
from tournaments import economy
from tournaments.models import FINAL_ROUND, Contestant, Placement, Tournament


def _history_count(repository) -> int:
    return sum(
        len(repository.get_point_history(c.id)) for c in repository.list_contestants()
    )


def test_decision_exchanges_points(running_manager, repository) -> None:
    match = running_manager.get_current_match()

    result = running_manager.select_winner(match.id, match.contestant1_id)

    winner = repository.get_contestant(match.contestant1_id)
    loser = repository.get_contestant(match.contestant2_id)
    assert (winner.ranking_points, loser.ranking_points) == (1100, 900)
    assert (winner.wins, winner.losses, winner.matches_played) == (1, 0, 1)
    assert (loser.wins, loser.losses, loser.matches_played) == (0, 1, 1)

    [winner_row] = repository.get_point_history(winner.id)
    [loser_row] = repository.get_point_history(loser.id)
    assert (winner_row.points_before, winner_row.points_change, winner_row.points_after) == (
        1000,
        100,
        1100,
    )
    assert (loser_row.points_before, loser_row.points_change, loser_row.points_after) == (
        1000,
        -100,
        900,
    )
    assert winner_row.match_id == loser_row.match_id == match.id
    assert winner_row.reason == f"Win against {loser.name}"

    assert result.tournament_changed is False
    assert result.next_match.match_number == 2
    assert result.message == "Winner recorded"


def test_decided_match_invariant(running_manager, repository) -> None:
    match = running_manager.get_current_match()
    running_manager.select_winner(match.id, match.contestant2_id)

    for stored in repository.get_matches(match.tournament_id):
        assert stored.completed == (
            stored.winner_id in (stored.contestant1_id, stored.contestant2_id)
        )


def test_resubmission_is_rejected_without_side_effects(
    running_manager, repository
) -> None:
    match = running_manager.get_current_match()
    running_manager.select_winner(match.id, match.contestant1_id)
    points = {c.id: c.ranking_points for c in repository.list_contestants()}
    history = _history_count(repository)

    with pytest.raises(AlreadyDecidedError):
        running_manager.select_winner(match.id, match.contestant2_id)

    assert {c.id: c.ranking_points for c in repository.list_contestants()} == points
    assert _history_count(repository) == history
    assert repository.get_match(match.id).winner_id == match.contestant1_id


def test_unknown_match_and_foreign_winner(running_manager, repository) -> None:
    match = running_manager.get_current_match()
    outsider = next(c for c in repository.list_contestants() if not c.active)

    with pytest.raises(MatchNotFoundError):
        running_manager.select_winner(9999, match.contestant1_id)
    with pytest.raises(InvalidWinnerError):
        running_manager.select_winner(match.id, outsider.id)

    assert repository.get_match(match.id).completed is False
    assert _history_count(repository) == 0


def test_concurrent_submissions_accept_one(running_manager, repository) -> None:
    match = running_manager.get_current_match()
    barrier = threading.Barrier(4)
    outcomes: list[str] = []

    def submit(winner_id: int) -> None:
        barrier.wait()
        try:
            running_manager.select_winner(match.id, winner_id)
            outcomes.append("accepted")
        except AlreadyDecidedError:
            outcomes.append("rejected")

    threads = [
        threading.Thread(target=submit, args=(winner_id,))
        for winner_id in (match.contestant1_id, match.contestant2_id) * 2
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["accepted", "rejected", "rejected", "rejected"]
    assert _history_count(repository) == 2


def test_pointer_moves_to_next_higher_then_wraps(running_manager, repository) -> None:
    tournament = running_manager.get_current_tournament()
    last = repository.get_match_by_number(tournament.id, 1, 32)
    fifth = repository.get_match_by_number(tournament.id, 1, 5)

    running_manager.select_winner(last.id, last.contestant1_id)
    assert repository.get_tournament(tournament.id).current_match == 1

    running_manager.select_winner(fifth.id, fifth.contestant2_id)
    assert repository.get_tournament(tournament.id).current_match == 6


def test_round_completion_pairs_winners_in_order(running_manager, repository, play) -> None:
    first_round = play(running_manager, 32)
    tournament = running_manager.get_current_tournament()

    assert (tournament.current_round, tournament.current_match) == (2, 1)
    second_round = repository.get_matches(tournament.id, 2)
    assert len(second_round) == 16
    by_number = {m.match_number: m for m in first_round}
    for match in second_round:
        i = match.match_number
        assert match.contestant1_id == by_number[2 * i - 1].contestant1_id
        assert match.contestant2_id == by_number[2 * i].contestant1_id


def test_quarterfinals_complete_into_semifinals(running_manager, repository, play) -> None:
    play(running_manager, 59)
    tournament = running_manager.get_current_tournament()
    assert tournament.current_round == 4
    assert repository.get_matches(tournament.id, 5) == []

    play(running_manager, 1)

    tournament = running_manager.get_current_tournament()
    assert (tournament.current_round, tournament.current_match) == (5, 1)
    assert len(repository.get_matches(tournament.id, 5)) == 2


def test_semifinals_create_bronze_match_and_final(
    running_manager, repository, play
) -> None:
    play(running_manager, 60)
    semifinals = play(running_manager, 2)
    tournament = running_manager.get_current_tournament()

    assert (tournament.current_round, tournament.current_match) == (FINAL_ROUND, 1)
    bronze, final = repository.get_matches(tournament.id, FINAL_ROUND)
    assert (bronze.match_number, final.match_number) == (1, 2)
    assert {bronze.contestant1_id, bronze.contestant2_id} == {
        m.contestant2_id for m in semifinals
    }
    assert {final.contestant1_id, final.contestant2_id} == {
        m.contestant1_id for m in semifinals
    }


def test_bronze_match_awards_third_and_fourth(running_manager, repository, play) -> None:
    play(running_manager, 62)
    [bronze] = play(running_manager, 1)
    tournament = running_manager.get_current_tournament()

    assert tournament.third_place_id == bronze.contestant1_id
    assert tournament.current_match == 2
    third = repository.get_contestant(bronze.contestant1_id)
    fourth = repository.get_contestant(bronze.contestant2_id)
    assert (third.bronze_medals, third.tournament_points) == (1, 35)
    assert (fourth.bronze_medals, fourth.tournament_points) == (0, 30)


@pytest.mark.slow
def test_final_completes_and_starts_next_tournament(
    running_manager, repository, play
) -> None:
    first = running_manager.get_current_tournament()
    decided = play(running_manager, 63)
    final = running_manager.get_current_match()

    result = running_manager.select_winner(final.id, final.contestant2_id)

    finished = repository.get_tournament(first.id)
    assert finished.completed is True
    assert finished.ended_at is not None
    assert finished.champion_id == final.contestant2_id
    assert finished.runner_up_id == final.contestant1_id
    assert finished.third_place_id == decided[-1].contestant1_id
    assert len(repository.get_matches(first.id)) == 64

    successor = running_manager.get_current_tournament()
    assert successor.id != first.id
    assert result.tournament_changed is True
    assert result.tournament_id == successor.id
    assert result.next_match.tournament_id == successor.id
    new_round = repository.get_matches(successor.id, 1)
    assert len(new_round) == 32
    assert not any(m.completed for m in new_round)
    assert len(repository.list_active_contestants()) == 64


@pytest.mark.slow
def test_every_finisher_is_placed_exactly_once(running_manager, repository, play) -> None:
    first = running_manager.get_current_tournament()
    play(running_manager, 64)

    awards = repository.get_placement_awards(first.id)
    assert len(awards) == 64
    assert len({a.contestant_id for a in awards}) == 64
    assert Counter(a.placement for a in awards) == {
        Placement.ROUND_OF_64: 32,
        Placement.ROUND_OF_32: 16,
        Placement.ROUND_OF_16: 8,
        Placement.QUARTER_FINALIST: 4,
        Placement.FOURTH: 1,
        Placement.THIRD: 1,
        Placement.RUNNER_UP: 1,
        Placement.CHAMPION: 1,
    }

    finished = repository.get_tournament(first.id)
    champion = repository.get_contestant(finished.champion_id)
    runner_up = repository.get_contestant(finished.runner_up_id)
    assert (champion.gold_medals, champion.tournament_points) == (1, 50)
    assert (runner_up.silver_medals, runner_up.tournament_points) == (1, 40)
    assert sum(c.tournament_points for c in repository.list_contestants()) == (
        32 * 10 + 16 * 15 + 8 * 20 + 4 * 25 + 30 + 35 + 40 + 50
    )


def test_awards_follow_the_economy_table(
    running_manager, repository, play, monkeypatch
) -> None:
    monkeypatch.setitem(economy.TOURNAMENT_POINTS, Placement.ROUND_OF_64, 12)
    monkeypatch.setitem(economy.TOURNAMENT_POINTS, Placement.CHAMPION, 75)
    first = running_manager.get_current_tournament()
    play(running_manager, 64)

    awards = {a.contestant_id: a for a in repository.get_placement_awards(first.id)}
    for exit_round in range(1, 5):
        for match in repository.get_matches(first.id, exit_round):
            award = awards[match.loser_id]
            assert award.placement is economy.placement_for(exit_round)
            assert award.points == economy.placement_award(exit_round)

    bronze, final = repository.get_matches(first.id, FINAL_ROUND)
    assert awards[bronze.winner_id].points == economy.placement_award(
        FINAL_ROUND, is_third=True
    )
    assert awards[final.winner_id].points == 75
    assert repository.get_contestant(final.winner_id).tournament_points == 75
    first_round = repository.get_matches(first.id, 1)
    assert {awards[m.loser_id].points for m in first_round} == {12}


def test_final_before_bronze_closes_the_tournament(
    running_manager, repository, play
) -> None:
    first = running_manager.get_current_tournament()
    play(running_manager, 62)
    bronze, final = repository.get_matches(first.id, FINAL_ROUND)

    running_manager.select_winner(final.id, final.contestant1_id)

    finished = repository.get_tournament(first.id)
    assert finished.completed is True
    assert finished.third_place_id is None
    with pytest.raises(TournamentClosedError):
        running_manager.select_winner(bronze.id, bronze.contestant1_id)
    assert repository.get_match(bronze.id).completed is False


def test_failed_rotation_keeps_the_completed_tournament(
    repository, make_roster, rng, play
) -> None:
    make_roster(64)
    manager = TournamentManager(repository, rng)
    first = manager.initialize_tournament()
    first_round = play(manager, 32)
    # Leave one round-one loser with nothing, so only 63 can be fielded
    repository.update_contestant(first_round[0].contestant2_id, ranking_points=0)
    play(manager, 31)
    final = manager.get_current_match()

    with pytest.raises(InsufficientRosterError) as excinfo:
        manager.select_winner(final.id, final.contestant1_id)

    assert excinfo.value.completed_tournament_id == first.id
    finished = repository.get_tournament(first.id)
    assert finished.completed is True
    assert finished.champion_id == final.contestant1_id
    assert repository.get_match(final.id).completed is True
    assert repository.get_current_tournament() is None
    assert len(repository.get_placement_awards(first.id)) == 64


def test_missing_contestant_is_an_integrity_violation(memory_repository) -> None:
    memory_repository.create_contestant(Contestant(name="Ana"))
    tournament = memory_repository.create_tournament(Tournament())
    match = memory_repository.create_match(
        Match(
            tournament_id=tournament.id,
            round_number=1,
            match_number=1,
            contestant1_id=1,
            contestant2_id=99,
        )
    )
    manager = TournamentManager(memory_repository)

    with pytest.raises(IntegrityViolationError):
        manager.select_winner(match.id, 1)

    assert memory_repository.get_match(match.id).completed is False
