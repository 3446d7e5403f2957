"""
Auto-build service functions.

Builds a whole season's schedule from a prior season of the same customer.
The prior schedule is reduced to placement patterns (which day of the
season, which field, what time), divisions are matched up by name with the
years in agegroup names rolled forward, and each matched division replays
its pattern onto this season's dates and fields. Divisions that cannot be
replayed fall back to the regular per-division auto-schedule.
"""

import logging
import re
from datetime import datetime

from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404

from league.models import Division, Game, Job, Team, ROUND_ROBIN_TYPE
from .game_operations import (
    auto_schedule_division,
    build_game,
    get_round_robin_pairings,
    synchronize_division_games,
)
from .grid import find_next_available_timeslot, get_effective_dates, get_effective_fields, get_occupied_slots

logger = logging.getLogger(__name__)

YEAR_IN_NAME = re.compile(r"\b(20[2-3]\d)\b")

EXACT_MATCH = "ExactMatch"
SIZE_MISMATCH = "SizeMismatch"
NEW_DIVISION = "NewDivision"
REMOVED_DIVISION = "RemovedDivision"

STRATEGY_REPLAY = "pattern-replay"
STRATEGY_AUTO = "auto-schedule"
STRATEGY_SKIP = "skip"


def increment_years_in_name(name):
    return YEAR_IN_NAME.sub(lambda m: str(int(m.group(1)) + 1), name)


def decrement_years_in_name(name):
    return YEAR_IN_NAME.sub(lambda m: str(int(m.group(1)) - 1), name)


def get_source_jobs(job_id):
    """Other jobs of the same customer with scheduled games, newest year first."""
    job = get_object_or_404(Job, pk=job_id)
    candidates = (
        Job.objects.filter(customer_id=job.customer_id)
        .exclude(pk=job.pk)
        .annotate(scheduled_game_count=Count("games", filter=Q(games__gdate__isnull=False)))
        .filter(scheduled_game_count__gt=0)
        .order_by("-year", "-scheduled_game_count")
    )
    return [
        {
            "job_id": j.id,
            "job_name": j.name,
            "year": j.year,
            "scheduled_game_count": j.scheduled_game_count,
        }
        for j in candidates
    ]


def extract_patterns(source_job_id):
    games = list(
        Game.objects.filter(job_id=source_job_id, gdate__isnull=False)
        .select_related("agegroup", "division", "field")
        .order_by("gdate", "id")
    )
    day_ordinals = {day: i for i, day in enumerate(sorted({g.gdate.date() for g in games}))}
    return [
        {
            "agegroup_name": game.agegroup.name,
            "division_name": game.division.name,
            "rnd": game.rnd,
            "game_number": game.game_number,
            "field_name": game.field.name if game.field else "",
            "dow": game.weekday,
            "time_of_day": game.gdate.time(),
            "day_ordinal": day_ordinals[game.gdate.date()],
            "t1_type": game.t1_type,
            "t2_type": game.t2_type,
        }
        for game in games
    ]


def summarize_source_divisions(source_job_id):
    """Team count of a prior division is the highest rank its round-robin games used."""
    summaries = {}
    games = Game.objects.filter(
        job_id=source_job_id,
        gdate__isnull=False,
        t1_type=ROUND_ROBIN_TYPE,
        t2_type=ROUND_ROBIN_TYPE,
    ).select_related("agegroup", "division")
    for game in games:
        key = (game.agegroup.name, game.division.name)
        summary = summaries.setdefault(key, {"team_count": 0, "game_count": 0})
        summary["team_count"] = max(summary["team_count"], game.t1_no, game.t2_no)
        summary["game_count"] += 1
    return [
        {"agegroup_name": ag, "division_name": div, **values}
        for (ag, div), values in summaries.items()
    ]


def summarize_current_divisions(job_id):
    summaries = {}
    teams = Team.objects.filter(
        job_id=job_id, is_active=True, division__isnull=False
    ).select_related("agegroup", "division")
    for team in teams:
        summary = summaries.setdefault(team.division_id, {
            "division_id": team.division_id,
            "agegroup_id": team.agegroup_id,
            "agegroup_name": team.agegroup.name,
            "division_name": team.division.name,
            "team_count": 0,
        })
        summary["team_count"] += 1
    return sorted(summaries.values(), key=lambda s: (s["agegroup_name"], s["division_name"]))


def match_divisions(source_divisions, current_divisions):
    current_lookup = {}
    for current in current_divisions:
        current_lookup.setdefault((current["agegroup_name"], current["division_name"]), current)

    matches = []
    matched_ids = set()
    for source in source_divisions:
        agegroup_name = increment_years_in_name(source["agegroup_name"])
        current = current_lookup.get((agegroup_name, source["division_name"]))
        if current is None:
            matches.append({
                "agegroup_name": agegroup_name,
                "division_name": source["division_name"],
                "current_division_id": None,
                "current_agegroup_id": None,
                "source_team_count": source["team_count"],
                "current_team_count": None,
                "source_game_count": source["game_count"],
                "match_type": REMOVED_DIVISION,
            })
            continue

        matched_ids.add(current["division_id"])
        matches.append({
            "agegroup_name": agegroup_name,
            "division_name": source["division_name"],
            "current_division_id": current["division_id"],
            "current_agegroup_id": current["agegroup_id"],
            "source_team_count": source["team_count"],
            "current_team_count": current["team_count"],
            "source_game_count": source["game_count"],
            "match_type": EXACT_MATCH if source["team_count"] == current["team_count"] else SIZE_MISMATCH,
        })

    for current in current_divisions:
        if current["division_id"] not in matched_ids:
            matches.append({
                "agegroup_name": current["agegroup_name"],
                "division_name": current["division_name"],
                "current_division_id": current["division_id"],
                "current_agegroup_id": current["agegroup_id"],
                "source_team_count": 0,
                "current_team_count": current["team_count"],
                "source_game_count": 0,
                "match_type": NEW_DIVISION,
            })
    return matches


def confidence_level(percent):
    if percent > 80:
        return "green"
    if percent > 50:
        return "yellow"
    return "red"


def analyze_feasibility(job_id, source_job_id):
    job = get_object_or_404(Job, pk=job_id)
    source_job = get_object_or_404(Job, pk=source_job_id)
    matches = match_divisions(summarize_source_divisions(source_job.id), summarize_current_divisions(job.id))

    source_field_names = sorted(set(
        Game.objects.filter(job=source_job, gdate__isnull=False, field__isnull=False)
        .values_list("field__name", flat=True)
    ))
    current_field_names = {name.lower() for name in job.fields.values_list("name", flat=True)}
    field_mismatches = [name for name in source_field_names if name.lower() not in current_field_names]

    counts = {t: sum(1 for m in matches if m["match_type"] == t)
              for t in (EXACT_MATCH, SIZE_MISMATCH, NEW_DIVISION, REMOVED_DIVISION)}
    total_current = len(matches) - counts[REMOVED_DIVISION]
    percent = int(round(100.0 * counts[EXACT_MATCH] / total_current)) if total_current else 0

    warnings = []
    if field_mismatches:
        warnings.append(
            f"{len(field_mismatches)} field(s) from prior year not found in current setup: "
            f"{', '.join(field_mismatches)}"
        )
    if counts[NEW_DIVISION]:
        warnings.append(
            f"{counts[NEW_DIVISION]} new division(s) will use standard auto-schedule (no prior pattern)."
        )
    if counts[SIZE_MISMATCH]:
        warnings.append(
            f"{counts[SIZE_MISMATCH]} division(s) have different team counts; choose how to handle each."
        )

    return {
        "source_job_id": source_job.id,
        "source_job_name": source_job.name,
        "source_year": source_job.year,
        "source_total_games": Game.objects.filter(job=source_job, gdate__isnull=False).count(),
        "division_matches": matches,
        "feasibility": {
            "total_current_divisions": total_current,
            "exact_matches": counts[EXACT_MATCH],
            "size_mismatches": counts[SIZE_MISMATCH],
            "new_divisions": counts[NEW_DIVISION],
            "removed_divisions": counts[REMOVED_DIVISION],
            "confidence_percent": percent,
            "confidence_level": confidence_level(percent),
            "field_mismatches": field_mismatches,
            "warnings": warnings,
        },
    }


def find_pattern_key(agegroup_name, division_name, patterns_by_division):
    for name in (agegroup_name, decrement_years_in_name(agegroup_name)):
        if (name, division_name) in patterns_by_division:
            return name, division_name
    return None


def replay_division_pattern(division, placements, field_ids_by_name, occupied, include_bracket_games):
    """Place one division's games where the prior season had them. Returns (placed, failed)."""
    if not include_bracket_games:
        placements = [
            p for p in placements
            if p["t1_type"] == ROUND_ROBIN_TYPE and p["t2_type"] == ROUND_ROBIN_TYPE
        ]
    if not placements:
        return 0, 0

    dates = get_effective_dates(division)
    fields = get_effective_fields(division)
    current_days = sorted({d.gdate for d in dates})
    pairings = {
        (p.rnd, p.game_number): p
        for p in get_round_robin_pairings(division.agegroup.job, division.active_teams().count())
    }

    placed = failed = 0
    for placement in placements:
        is_round_robin = placement["t1_type"] == ROUND_ROBIN_TYPE and placement["t2_type"] == ROUND_ROBIN_TYPE
        pairing = pairings.get((placement["rnd"], placement["game_number"])) if is_round_robin else None
        if is_round_robin and pairing is None:
            failed += 1
            continue

        field_id = field_ids_by_name.get(placement["field_name"].lower())
        day_ordinal = placement["day_ordinal"]
        slot = None
        if field_id is not None and day_ordinal < len(current_days):
            candidate = (field_id, datetime.combine(current_days[day_ordinal], placement["time_of_day"]))
            if candidate not in occupied:
                slot = candidate
        if slot is None:
            slot = find_next_available_timeslot(dates, fields, occupied)
        if slot is None:
            failed += 1
            continue

        field_id, gdate = slot
        if pairing is not None:
            game = build_game(division, pairing, field_id, gdate)
        else:
            game = Game(
                job_id=division.agegroup.job_id,
                agegroup_id=division.agegroup_id,
                division=division,
                field_id=field_id,
                gdate=gdate,
                rnd=placement["rnd"],
                game_number=placement["game_number"],
                t1_type=placement["t1_type"],
                t2_type=placement["t2_type"],
            )
        game.save()
        occupied.add(slot)
        placed += 1

    synchronize_division_games(division)
    return placed, failed


def division_result(match, status, placed=0, failed=0):
    return {
        "agegroup_name": match["agegroup_name"],
        "division_name": match["division_name"],
        "division_id": match["current_division_id"],
        "games_placed": placed,
        "games_failed": failed,
        "status": status,
    }


def choose_strategy(match, resolutions):
    if match["match_type"] == EXACT_MATCH:
        return STRATEGY_REPLAY
    if match["match_type"] == SIZE_MISMATCH:
        return resolutions.get(match["current_division_id"], STRATEGY_AUTO)
    if match["match_type"] == NEW_DIVISION:
        return STRATEGY_AUTO
    return STRATEGY_SKIP


@transaction.atomic
def build_schedule(
    job_id,
    source_job_id,
    skip_division_ids=None,
    skip_already_scheduled=False,
    include_bracket_games=False,
    resolutions=None,
):
    """
    Schedule every current division from the source job's patterns.

    ``resolutions`` maps a size-mismatched division id to ``"auto-schedule"``,
    ``"pattern-replay"`` or ``"skip"``; unresolved mismatches auto-schedule.
    """
    job = get_object_or_404(Job, pk=job_id)
    source_job = get_object_or_404(Job, pk=source_job_id)
    skip_ids = set(skip_division_ids or [])
    resolutions = {int(k): v for k, v in (resolutions or {}).items()}

    patterns_by_division = {}
    for placement in extract_patterns(source_job.id):
        key = (placement["agegroup_name"], placement["division_name"])
        patterns_by_division.setdefault(key, []).append(placement)

    matches = match_divisions(summarize_source_divisions(source_job.id), summarize_current_divisions(job.id))
    actionable = sorted(
        (m for m in matches if m["match_type"] != REMOVED_DIVISION and m["current_division_id"]),
        key=lambda m: (m["agegroup_name"], m["division_name"]),
    )

    field_ids_by_name = {}
    for field in job.fields.all():
        field_ids_by_name.setdefault(field.name.lower(), field.id)
    all_field_ids = list(field_ids_by_name.values())

    existing_counts = dict(
        Game.objects.filter(job=job, gdate__isnull=False)
        .order_by()
        .values_list("division_id")
        .annotate(n=Count("id"))
    )
    occupied = get_occupied_slots(job, all_field_ids)

    results = []
    total_placed = total_failed = 0
    for match in actionable:
        division_id = match["current_division_id"]
        if division_id in skip_ids:
            results.append(division_result(match, "skipped"))
            continue
        if skip_already_scheduled and existing_counts.get(division_id, 0) > 0:
            results.append(division_result(match, "already-scheduled"))
            continue

        strategy = choose_strategy(match, resolutions)
        if strategy == STRATEGY_SKIP:
            results.append(division_result(match, "skipped"))
            continue

        division = Division.objects.select_related("agegroup__job").get(pk=division_id)
        if strategy == STRATEGY_AUTO:
            outcome = auto_schedule_division(division_id)
            placed, failed = outcome["scheduled_count"], outcome["failed_count"]
            occupied = get_occupied_slots(job, all_field_ids)
        else:
            Game.objects.filter(division=division).delete()
            occupied = get_occupied_slots(job, all_field_ids)
            pattern_key = find_pattern_key(match["agegroup_name"], match["division_name"], patterns_by_division)
            if pattern_key is None:
                logger.warning(
                    f"Auto-build: no pattern found for {match['agegroup_name']}/{match['division_name']}"
                )
                placed = failed = 0
            else:
                placed, failed = replay_division_pattern(
                    division, patterns_by_division[pattern_key], field_ids_by_name, occupied, include_bracket_games
                )

        results.append(division_result(match, strategy, placed, failed))
        total_placed += placed
        total_failed += failed

    skipped = sum(1 for r in results if r["status"] in ("skipped", "already-scheduled"))
    logger.info(
        f"Auto-build job {job_id} from {source_job_id}: divisions={len(actionable)}, "
        f"scheduled={len(results) - skipped}, skipped={skipped}, "
        f"games_placed={total_placed}, games_failed={total_failed}"
    )
    return {
        "total_divisions": len(actionable),
        "divisions_scheduled": len(results) - skipped,
        "divisions_skipped": skipped,
        "total_games_placed": total_placed,
        "games_failed_to_place": total_failed,
        "division_results": results,
    }


@transaction.atomic
def undo_build(job_id):
    deleted, _ = Game.objects.filter(job_id=job_id).delete()
    logger.info(f"Auto-build undo for job {job_id}: {deleted} games deleted")
    return deleted
