"""Ranking-points exchange and placement awards.

Pure functions with no storage access. The resolver calls these after every
decision and at tournament close.
"""

from .models import FINAL_ROUND, Placement

# Share of the opponent's points that changes hands, as 1/EXCHANGE_DIVISOR.
EXCHANGE_DIVISOR = 10

TOURNAMENT_POINTS = {
    Placement.CHAMPION: 50,
    Placement.RUNNER_UP: 40,
    Placement.THIRD: 35,
    Placement.FOURTH: 30,
    Placement.QUARTER_FINALIST: 25,
    Placement.ROUND_OF_16: 20,
    Placement.ROUND_OF_32: 15,
    Placement.ROUND_OF_64: 10,
}

ELIMINATION_PLACEMENTS = {
    1: Placement.ROUND_OF_64,
    2: Placement.ROUND_OF_32,
    3: Placement.ROUND_OF_16,
    4: Placement.QUARTER_FINALIST,
}

MEDALS = {
    Placement.CHAMPION: "gold_medals",
    Placement.RUNNER_UP: "silver_medals",
    Placement.THIRD: "bronze_medals",
}


def exchange(winner_points: int, loser_points: int) -> tuple[int, int]:
    """Return (winner_gain, loser_loss) for a decided match.

    The winner takes a tenth of the loser's points and the loser gives up a
    tenth of the winner's points, both rounded down.
    """
    if winner_points < 0 or loser_points < 0:
        raise ValueError("Ranking points cannot be negative")
    winner_gain = loser_points // EXCHANGE_DIVISOR
    loser_loss = winner_points // EXCHANGE_DIVISOR
    return winner_gain, loser_loss


def apply_exchange(winner_points: int, loser_points: int) -> tuple[int, int]:
    """Return the post-match (winner_points, loser_points), loser floored at zero."""
    winner_gain, loser_loss = exchange(winner_points, loser_points)
    return winner_points + winner_gain, max(0, loser_points - loser_loss)


def placement_for(
    exit_round: int,
    is_champion: bool = False,
    is_runner_up: bool = False,
    is_third: bool = False,
    is_fourth: bool = False,
) -> Placement:
    """Classify a contestant's finish from the round they exited in."""
    if is_champion:
        return Placement.CHAMPION
    if is_runner_up:
        return Placement.RUNNER_UP
    if is_third:
        return Placement.THIRD
    if is_fourth:
        return Placement.FOURTH
    if exit_round in ELIMINATION_PLACEMENTS:
        return ELIMINATION_PLACEMENTS[exit_round]
    raise ValueError(
        f"Round {exit_round} exits are placed by the bronze match or final "
        f"(rounds 5-{FINAL_ROUND})"
    )


def placement_award(
    exit_round: int,
    is_champion: bool = False,
    is_runner_up: bool = False,
    is_third: bool = False,
    is_fourth: bool = False,
) -> int:
    """Tournament points for a finish."""
    placement = placement_for(
        exit_round, is_champion, is_runner_up, is_third, is_fourth
    )
    return TOURNAMENT_POINTS[placement]
