"""
Pairing service functions.

Pairings are matchup templates keyed by team count: every division with that
many active teams draws from the same set. Round-robin pairings refer to
teams by division rank; bracket pairings refer to seeds and carry the bracket
level (Z, Y, X, Q, S, F) as their type.
"""

import logging

from django.db import transaction
from django.db.models import Max
from django.shortcuts import get_object_or_404

from league.models import Division, Game, Job, Pairing, Team, ROUND_ROBIN_TYPE
from .clubs import get_team_player_fees
from .game_operations import synchronize_division_games
from .pool_assignment import renumber_div_ranks

logger = logging.getLogger(__name__)

MAX_BLOCK_ROUNDS = 14

# Each bracket level feeds the next one down to the final
BRACKET_CASCADE = {"Z": "Y", "Y": "X", "X": "Q", "Q": "S", "S": "F"}
BRACKET_GAME_COUNTS = {"Z": 32, "Y": 16, "X": 8, "Q": 4, "S": 2, "F": 1}

EDITABLE_PAIRING_FIELDS = (
    "game_number",
    "rnd",
    "t1",
    "t2",
    "t1_type",
    "t2_type",
    "t1_gno_ref",
    "t2_gno_ref",
    "t1_annotation",
    "t2_annotation",
)


def round_robin_rounds(team_count, rounds):
    """
    Rounds of (t1, t2) pairs by the circle method.

    Team 1 stays fixed while the rest rotate. Odd team counts get a bye, and
    a team paired with the bye sits the round out. Once a full cycle is used
    up the next cycle repeats it with home and away swapped.
    """
    teams = list(range(1, team_count + 1))
    if team_count % 2:
        teams.append(0)
    size = len(teams)
    cycle_length = size - 1

    cycle = []
    rotation = teams[:]
    for _ in range(cycle_length):
        pairs = []
        for i in range(size // 2):
            home, away = rotation[i], rotation[size - 1 - i]
            if home and away:
                pairs.append((home, away))
        cycle.append(pairs)
        rotation = [rotation[0], rotation[-1]] + rotation[1:-1]

    schedule = []
    for r in range(rounds):
        pairs = cycle[r % cycle_length]
        if (r // cycle_length) % 2:
            pairs = [(away, home) for home, away in pairs]
        schedule.append(pairs)
    return schedule


def seeding_order(team_count):
    """Standard bracket seed order, e.g. 8 -> [1, 8, 4, 5, 2, 7, 3, 6]."""
    order = [1, 2]
    while len(order) < team_count:
        total = len(order) * 2 + 1
        order = [seed for s in order for seed in (s, total - s)]
    return order


def bracket_pairs(key):
    games = BRACKET_GAME_COUNTS[key]
    order = seeding_order(games * 2)
    return [(order[i], order[i + 1]) for i in range(0, len(order), 2)]


def get_max_game_and_round(job, team_count):
    result = Pairing.objects.filter(job=job, team_count=team_count).aggregate(
        max_game=Max("game_number"), max_round=Max("rnd")
    )
    return result["max_game"] or 0, result["max_round"] or 0


def serialize_pairing(pairing, scheduled_keys=frozenset()):
    return {
        "ai": pairing.id,
        "team_count": pairing.team_count,
        "game_number": pairing.game_number,
        "rnd": pairing.rnd,
        "t1": pairing.t1,
        "t2": pairing.t2,
        "t1_type": pairing.t1_type,
        "t2_type": pairing.t2_type,
        "t1_gno_ref": pairing.t1_gno_ref,
        "t2_gno_ref": pairing.t2_gno_ref,
        "t1_annotation": pairing.t1_annotation,
        "t2_annotation": pairing.t2_annotation,
        "available": (pairing.rnd, pairing.t1, pairing.t2) not in scheduled_keys,
    }


@transaction.atomic
def add_pairing_block(job_id, team_count, rounds):
    """Append a round-robin block after the existing pairings for this team count."""
    job = get_object_or_404(Job, pk=job_id)
    if team_count < 2:
        raise ValueError("A round-robin block needs at least 2 teams.")
    if not 1 <= rounds <= MAX_BLOCK_ROUNDS:
        raise ValueError(f"Rounds must be between 1 and {MAX_BLOCK_ROUNDS}.")

    max_game, max_round = get_max_game_and_round(job, team_count)
    pairings = []
    game_number = max_game
    for round_index, pairs in enumerate(round_robin_rounds(team_count, rounds), start=1):
        for t1, t2 in pairs:
            game_number += 1
            pairings.append(Pairing(
                job=job,
                team_count=team_count,
                game_number=game_number,
                rnd=max_round + round_index,
                t1=t1,
                t2=t2,
                t1_type=ROUND_ROBIN_TYPE,
                t2_type=ROUND_ROBIN_TYPE,
            ))
    Pairing.objects.bulk_create(pairings)

    logger.info(f"Added block of {len(pairings)} pairings for {team_count} teams, {rounds} rounds in job {job_id}")
    return [serialize_pairing(p) for p in pairings]


@transaction.atomic
def add_single_elimination(job_id, team_count, start_key):
    """Add bracket pairings from ``start_key`` down through the final, one round per level."""
    job = get_object_or_404(Job, pk=job_id)
    if start_key not in BRACKET_GAME_COUNTS:
        raise ValueError(f"Unknown bracket level '{start_key}'.")

    created = []
    key = start_key
    while key:
        max_game, max_round = get_max_game_and_round(job, team_count)
        level = [
            Pairing(
                job=job,
                team_count=team_count,
                game_number=max_game + i,
                rnd=max_round + 1,
                t1=t1,
                t2=t2,
                t1_type=key,
                t2_type=key,
            )
            for i, (t1, t2) in enumerate(bracket_pairs(key), start=1)
        ]
        Pairing.objects.bulk_create(level)
        created.extend(level)
        key = BRACKET_CASCADE.get(key)

    logger.info(f"Added {len(created)} bracket pairings from {start_key} to F for {team_count} teams")
    return [serialize_pairing(p) for p in created]


@transaction.atomic
def add_single_pairing(job_id, team_count):
    job = get_object_or_404(Job, pk=job_id)
    max_game, max_round = get_max_game_and_round(job, team_count)
    pairing = Pairing.objects.create(
        job=job,
        team_count=team_count,
        game_number=max_game + 1,
        rnd=max_round + 1,
        t1=0,
        t2=0,
        t1_type=ROUND_ROBIN_TYPE,
        t2_type=ROUND_ROBIN_TYPE,
    )
    return serialize_pairing(pairing)


@transaction.atomic
def edit_pairing(pairing_id, **changes):
    """Partial update: only the fields present (and not None) in ``changes`` are written."""
    pairing = get_object_or_404(Pairing, pk=pairing_id)
    unknown = set(changes) - set(EDITABLE_PAIRING_FIELDS)
    if unknown:
        raise ValueError(f"Cannot edit pairing fields: {', '.join(sorted(unknown))}")

    for name, value in changes.items():
        if value is not None:
            setattr(pairing, name, value)
    pairing.save()
    return serialize_pairing(pairing)


@transaction.atomic
def delete_pairing(pairing_id):
    pairing = get_object_or_404(Pairing, pk=pairing_id)
    pairing.delete()


@transaction.atomic
def remove_all_pairings(job_id, team_count):
    deleted, _ = Pairing.objects.filter(job_id=job_id, team_count=team_count).delete()
    logger.info(f"Removed {deleted} pairings for {team_count} teams in job {job_id}")
    return deleted


def get_division_pairings(division_id):
    division = get_object_or_404(Division.objects.select_related("agegroup"), pk=division_id)
    team_count = division.active_teams().count()
    scheduled_keys = set(
        Game.objects.filter(division=division).values_list("rnd", "t1_no", "t2_no")
    )
    pairings = Pairing.objects.filter(
        job_id=division.agegroup.job_id, team_count=team_count
    ).order_by("rnd", "game_number")
    return {
        "division_id": division.id,
        "team_count": team_count,
        "pairings": [serialize_pairing(p, scheduled_keys) for p in pairings],
    }


def get_who_plays_who(job_id, team_count):
    """N x N matrix of how often each pair of ranks meets in round-robin pairings."""
    matrix = [[0] * team_count for _ in range(team_count)]
    pairings = Pairing.objects.filter(
        job_id=job_id, team_count=team_count, t1_type=ROUND_ROBIN_TYPE, t2_type=ROUND_ROBIN_TYPE
    )
    for t1, t2 in pairings.values_list("t1", "t2"):
        if 1 <= t1 <= team_count and 1 <= t2 <= team_count:
            matrix[t1 - 1][t2 - 1] += 1
            matrix[t2 - 1][t1 - 1] += 1
    return {"team_count": team_count, "matrix": matrix}


def get_division_teams(division_id):
    division = get_object_or_404(Division, pk=division_id)
    return [
        {
            "team_id": team.id,
            "div_rank": team.div_rank,
            "club_name": team.club.name if team.club else None,
            "team_name": team.name,
            **get_team_player_fees(team),
        }
        for team in division.active_teams().select_related("club", "agegroup", "job")
    ]


@transaction.atomic
def edit_division_team(job_id, team_id, div_rank=None, team_name=None):
    """
    Rename a team or move it to another rank.

    A rank change swaps with whichever team holds the target rank. Ranks are
    then renumbered 1..N and the division's games re-resolved so each game
    slot points at the team now holding its rank.
    """
    team = get_object_or_404(Team, pk=team_id)
    if team.job_id != job_id:
        raise ValueError("Team does not belong to this job.")
    if team.division_id is None:
        raise ValueError("Team has no division assignment.")
    division = team.division

    rank_changed = div_rank is not None and team.div_rank != div_rank
    name_changed = team_name is not None and team.name != team_name
    if rank_changed:
        swap_team = division.active_teams().filter(div_rank=div_rank).exclude(pk=team.pk).first()
        if swap_team is not None:
            swap_team.div_rank = team.div_rank
            swap_team.save(update_fields=["div_rank", "updated_at"])
        team.div_rank = div_rank
    if name_changed:
        team.name = team_name
    team.save()

    renumber_div_ranks(division)
    synchronize_division_games(division)
    logger.info(
        f"Edited division team {team_id} in division {division.id}: "
        f"rank_changed={rank_changed}, name_changed={name_changed}"
    )
    return get_division_teams(division.id)
