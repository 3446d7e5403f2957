"""
Service functions for placing, moving and removing scheduled games.

Games are created from pairings. A game stores the division ranks it was
paired on (t1_no/t2_no); the actual teams and their names are resolved from
those ranks by synchronize_division_games whenever ranks or games change.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.shortcuts import get_object_or_404

from league.models import Division, Field, Game, Pairing, ROUND_ROBIN_TYPE
from .grid import (
    find_next_available_timeslot,
    get_effective_dates,
    get_effective_fields,
    get_occupied_slots,
)

logger = logging.getLogger(__name__)

WEATHER_MESSAGES = {
    1: "Schedule adjusted successfully.",
    2: "Cannot apply - adjustment would create overlapping games on one or more fields.",
    3: "The 'before' interval doesn't match the actual game spacing. Verify the current first game time and interval.",
    4: "The 'after' interval is invalid. Please enter a positive number of minutes.",
    5: "All affected games must be within the same calendar year.",
    6: "No games found for the selected date/time range and fields.",
    7: "No changes - the before and after values are identical.",
    8: "Some games in the range are not aligned to the specified interval. Manual adjustment required for off-interval games.",
}


def synchronize_division_games(division):
    """Re-resolve team ids and names on the division's round-robin games from current ranks."""
    teams_by_rank = {t.div_rank: t for t in division.active_teams()}
    updated = 0
    for game in Game.objects.filter(division=division):
        changed = False
        for side in ("t1", "t2"):
            if getattr(game, f"{side}_type") != ROUND_ROBIN_TYPE:
                continue
            team = teams_by_rank.get(getattr(game, f"{side}_no"))
            team_id = team.id if team else None
            team_name = team.name if team else ""
            if getattr(game, f"{side}_id") != team_id or getattr(game, f"{side}_name") != team_name:
                setattr(game, f"{side}_id", team_id)
                setattr(game, f"{side}_name", team_name)
                changed = True
        if changed:
            game.save()
            updated += 1
    return updated


def build_game(division, pairing, field_id, gdate):
    return Game(
        job_id=division.agegroup.job_id,
        agegroup_id=division.agegroup_id,
        division=division,
        field_id=field_id,
        gdate=gdate,
        rnd=pairing.rnd,
        game_number=pairing.game_number,
        t1_no=pairing.t1,
        t2_no=pairing.t2,
        t1_type=pairing.t1_type,
        t2_type=pairing.t2_type,
    )


def get_round_robin_pairings(job, team_count):
    return list(
        Pairing.objects.filter(
            job=job,
            team_count=team_count,
            t1_type=ROUND_ROBIN_TYPE,
            t2_type=ROUND_ROBIN_TYPE,
        ).order_by("rnd", "game_number")
    )


@transaction.atomic
def place_game(division_id, pairing_id, field_id, gdate):
    division = get_object_or_404(Division.objects.select_related("agegroup"), pk=division_id)
    pairing = get_object_or_404(Pairing, pk=pairing_id, job_id=division.agegroup.job_id)
    field = get_object_or_404(Field, pk=field_id)

    game = build_game(division, pairing, field.id, gdate)
    game.save()
    synchronize_division_games(division)
    game.refresh_from_db()
    logger.info(f"Placed game {game.id} from pairing {pairing_id} at {gdate} on field {field.name}")
    return game


@transaction.atomic
def move_game(game_id, field_id, gdate):
    """Move a game to a new slot; if another game holds that slot the two games trade places."""
    game = get_object_or_404(Game, pk=game_id)
    target_field = get_object_or_404(Field, pk=field_id)

    occupant = (
        Game.objects.filter(job_id=game.job_id, field=target_field, gdate=gdate)
        .exclude(pk=game.pk)
        .first()
    )
    if occupant is not None:
        occupant.field_id, occupant.gdate = game.field_id, game.gdate
        occupant.save()
        logger.info(f"Swapped game {game.id} with game {occupant.id}")

    game.field = target_field
    game.gdate = gdate
    game.save()
    return {"status": "success", "swapped_with": occupant.id if occupant else None}


@transaction.atomic
def delete_game(game_id):
    game = get_object_or_404(Game, pk=game_id)
    game.delete()
    logger.info(f"Deleted game {game_id}")


@transaction.atomic
def delete_division_games(division_id):
    deleted, _ = Game.objects.filter(division_id=division_id).delete()
    logger.info(f"Deleted {deleted} games for division {division_id}")
    return deleted


@transaction.atomic
def auto_schedule_division(division_id):
    """
    Replace a division's games with its round-robin pairings placed in order
    into the first free timeslots.

    With several dates, each pairing goes on the dates tagged with its round,
    or on any date when its round has none. Slots already taken by other
    divisions on the same fields are left alone.
    """
    division = get_object_or_404(Division.objects.select_related("agegroup__job"), pk=division_id)
    job = division.agegroup.job
    Game.objects.filter(division=division).delete()

    team_count = division.active_teams().count()
    pairings = get_round_robin_pairings(job, team_count)
    dates = get_effective_dates(division)
    fields = get_effective_fields(division)

    if not pairings or not dates or not fields:
        return {
            "total_pairings": len(pairings),
            "scheduled_count": 0,
            "failed_count": len(pairings),
        }

    occupied = get_occupied_slots(job, {f.field_id for f in fields})
    single_date = len(dates) == 1
    scheduled = failed = 0
    for pairing in pairings:
        round_dates = dates if single_date else [d for d in dates if d.rnd == pairing.rnd]
        if not round_dates:
            round_dates = dates

        slot = find_next_available_timeslot(round_dates, fields, occupied)
        if slot is None:
            failed += 1
            continue

        occupied.add(slot)
        field_id, gdate = slot
        build_game(division, pairing, field_id, gdate).save()
        scheduled += 1

    synchronize_division_games(division)
    logger.info(
        f"Auto-scheduled division {division_id}: total={len(pairings)}, "
        f"scheduled={scheduled}, failed={failed}"
    )
    return {
        "total_pairings": len(pairings),
        "scheduled_count": scheduled,
        "failed_count": failed,
    }


def _weather_games(job_id, pre_first_game, field_ids):
    return Game.objects.filter(
        job_id=job_id,
        field_id__in=field_ids,
        gdate__gte=pre_first_game,
        gdate__date=pre_first_game.date(),
    ).order_by("gdate")


def get_affected_game_count(job_id, pre_first_game, field_ids):
    return _weather_games(job_id, pre_first_game, field_ids).count()


@transaction.atomic
def adjust_for_weather(job_id, pre_first_game, pre_interval, post_first_game, post_interval, field_ids):
    """
    Re-time the rest of a game day on some fields, e.g. after a weather delay.

    Every game on the chosen fields from ``pre_first_game`` onwards that day
    sits k intervals after the first game; it moves to
    ``post_first_game + k * post_interval``. Returns a result code and message.
    """

    def result(code):
        return {"success": code == 1, "result_code": code, "message": WEATHER_MESSAGES[code]}

    if post_interval <= 0:
        return result(4)
    if pre_first_game == post_first_game and pre_interval == post_interval:
        return result(7)
    if pre_interval <= 0:
        return result(3)

    games = list(_weather_games(job_id, pre_first_game, field_ids))
    if not games:
        return result(6)
    if pre_first_game.year != post_first_game.year:
        return result(5)
    if games[0].gdate != pre_first_game:
        return result(3)

    step = timedelta(minutes=pre_interval)
    new_times = {}
    for game in games:
        offset = game.gdate - pre_first_game
        if offset % step:
            return result(8)
        new_times[game.id] = post_first_game + (offset // step) * timedelta(minutes=post_interval)

    moved_ids = set(new_times)
    taken = {
        (field_id, gdate)
        for field_id, gdate in Game.objects.filter(job_id=job_id, field_id__in=field_ids)
        .exclude(pk__in=moved_ids)
        .values_list("field_id", "gdate")
    }
    for game in games:
        key = (game.field_id, new_times[game.id])
        if key in taken:
            return result(2)
        taken.add(key)

    for game in games:
        game.gdate = new_times[game.id]
        game.save(update_fields=["gdate", "updated_at"])

    logger.info(f"Weather adjustment in job {job_id}: moved {len(games)} games")
    response = result(1)
    response["games_moved"] = len(games)
    return response
