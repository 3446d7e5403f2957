"""
Schedule QA service functions.

Runs the post-build checks over every scheduled game in a job: problems that
must be fixed (double bookings, unscheduled teams, rank mismatches and so on)
and overview tables used to eyeball fairness and field utilization.
"""

import logging
from collections import Counter, defaultdict

from django.conf import settings
from django.shortcuts import get_object_or_404

from league.models import Game, Job, Team

logger = logging.getLogger(__name__)

DAY_FORMAT = "%m/%d/%Y"


def _day(gdate):
    return gdate.strftime(DAY_FORMAT)


def _team_appearances(games):
    """One record per side of each game that has a resolved team."""
    for game in games:
        for side in ("t1", "t2"):
            team_id = getattr(game, f"{side}_id")
            if team_id is None:
                continue
            yield {
                "team_id": team_id,
                "team_name": getattr(game, f"{side}_name"),
                "team_no": getattr(game, f"{side}_no"),
                "game": game,
            }


def find_unscheduled_teams(job, games):
    scheduled = {a["team_id"] for a in _team_appearances(games)}
    teams = (
        Team.objects.filter(job=job, is_active=True, division__isnull=False)
        .exclude(pk__in=scheduled)
        .select_related("agegroup", "division")
        .order_by("agegroup__name", "division__name", "div_rank")
    )
    return [
        {
            "agegroup_name": t.agegroup.name,
            "division_name": t.division.name,
            "team_name": t.name,
            "div_rank": t.div_rank,
        }
        for t in teams
    ]


def find_field_double_bookings(games):
    counts = Counter((g.gdate, g.field_id) for g in games if g.field_id)
    names = {g.field_id: g.field.name for g in games if g.field_id}
    return [
        {"label": names[field_id], "gdate": gdate, "count": count}
        for (gdate, field_id), count in sorted(counts.items(), key=lambda item: (item[0][0], item[0][1]))
        if count > 1
    ]


def find_team_double_bookings(games):
    counts = Counter()
    names = {}
    for appearance in _team_appearances(games):
        key = (appearance["game"].gdate, appearance["team_id"])
        counts[key] += 1
        names[appearance["team_id"]] = appearance["team_name"]
    return [
        {"label": names[team_id], "gdate": gdate, "count": count}
        for (gdate, team_id), count in sorted(counts.items(), key=lambda item: (item[0][0], item[0][1]))
        if count > 1
    ]


def find_rank_mismatches(games, ranks):
    mismatches = []
    for appearance in _team_appearances(g for g in games if g.is_round_robin):
        actual = ranks.get(appearance["team_id"])
        if actual is not None and appearance["team_no"] != actual:
            game = appearance["game"]
            mismatches.append({
                "agegroup_name": game.agegroup.name,
                "division_name": game.division.name,
                "field_name": game.field.name if game.field else "",
                "gdate": game.gdate,
                "team_name": appearance["team_name"],
                "schedule_no": appearance["team_no"],
                "actual_div_rank": actual,
            })
    return sorted(mismatches, key=lambda m: (m["agegroup_name"], m["division_name"], m["gdate"]))


def find_back_to_back_games(games, max_minutes):
    by_team = defaultdict(list)
    for appearance in _team_appearances(g for g in games if g.is_round_robin):
        by_team[appearance["team_id"]].append(appearance)

    found = []
    for appearances in by_team.values():
        appearances.sort(key=lambda a: a["game"].gdate)
        for previous, current in zip(appearances, appearances[1:]):
            prev_time, curr_time = previous["game"].gdate, current["game"].gdate
            if prev_time.date() != curr_time.date():
                continue
            minutes = int((curr_time - prev_time).total_seconds() // 60)
            if 0 < minutes <= max_minutes:
                game = current["game"]
                found.append({
                    "agegroup_name": game.agegroup.name,
                    "division_name": game.division.name,
                    "team_name": current["team_name"],
                    "field_name": game.field.name if game.field else "",
                    "gdate": curr_time,
                    "minutes_since_previous": minutes,
                })
    return sorted(found, key=lambda b: (b["gdate"], b["team_name"]))


def find_repeated_matchups(games):
    matchups = {}
    for game in games:
        if not game.is_round_robin or game.t1_id is None or game.t2_id is None:
            continue
        if game.t1_id <= game.t2_id:
            key, names = (game.t1_id, game.t2_id), (game.t1_name, game.t2_name)
        else:
            key, names = (game.t2_id, game.t1_id), (game.t2_name, game.t1_name)
        entry = matchups.setdefault(key, {
            "agegroup_name": game.agegroup.name,
            "division_name": game.division.name,
            "team1_name": names[0],
            "team2_name": names[1],
            "times_played": 0,
        })
        entry["times_played"] += 1
    repeated = [m for m in matchups.values() if m["times_played"] > 1]
    return sorted(repeated, key=lambda m: (m["agegroup_name"], m["division_name"], m["team1_name"]))


def find_inactive_teams_in_games(games):
    inactive = {}
    for appearance in _team_appearances(games):
        game = appearance["game"]
        team = game.t1 if appearance["team_id"] == game.t1_id else game.t2
        if not team.is_active:
            entry = inactive.setdefault(team.id, {
                "agegroup_name": game.agegroup.name,
                "division_name": game.division.name,
                "team_name": team.name,
                "game_count": 0,
            })
            entry["game_count"] += 1
    return sorted(inactive.values(), key=lambda t: (t["agegroup_name"], t["division_name"], t["team_name"]))


def count_games_per_date(games):
    counts = Counter(g.gdate.date() for g in games)
    return {day.strftime(DAY_FORMAT): count for day, count in sorted(counts.items())}


def count_games_per_team(games):
    counts = {}
    for appearance in _team_appearances(g for g in games if g.is_round_robin):
        game = appearance["game"]
        entry = counts.setdefault(appearance["team_id"], {
            "agegroup_name": game.agegroup.name,
            "division_name": game.division.name,
            "team_name": appearance["team_name"],
            "game_count": 0,
        })
        entry["game_count"] += 1
    return sorted(counts.values(), key=lambda t: (t["agegroup_name"], t["division_name"], t["team_name"]))


def count_games_per_team_per_day(games, clubs):
    counts = {}
    for appearance in _team_appearances(games):
        game = appearance["game"]
        key = (appearance["team_id"], game.gdate.date())
        entry = counts.setdefault(key, {
            "agegroup_name": game.agegroup.name,
            "division_name": game.division.name,
            "club_name": clubs.get(appearance["team_id"], ""),
            "team_name": appearance["team_name"],
            "game_day": _day(game.gdate),
            "game_count": 0,
        })
        entry["game_count"] += 1
    return sorted(
        counts.values(),
        key=lambda t: (t["agegroup_name"], t["division_name"], t["team_name"], t["game_day"]),
    )


def count_games_per_field_per_day(games):
    counts = Counter((g.field.name, g.gdate.date()) for g in games if g.field_id)
    return [
        {"field_name": field_name, "game_day": day.strftime(DAY_FORMAT), "game_count": count}
        for (field_name, day), count in sorted(counts.items())
    ]


def compute_game_spreads(games):
    by_team_day = defaultdict(list)
    names = {}
    for appearance in _team_appearances(g for g in games if g.is_round_robin):
        game = appearance["game"]
        by_team_day[(appearance["team_id"], game.gdate.date())].append(game)
        names[appearance["team_id"]] = appearance["team_name"]

    spreads = []
    for (team_id, day), day_games in by_team_day.items():
        if len(day_games) < 2:
            continue
        times = [g.gdate for g in day_games]
        spreads.append({
            "agegroup_name": day_games[0].agegroup.name,
            "division_name": day_games[0].division.name,
            "team_name": names[team_id],
            "game_day": day.strftime(DAY_FORMAT),
            "spread_minutes": int((max(times) - min(times)).total_seconds() // 60),
            "game_count": len(day_games),
        })
    return sorted(spreads, key=lambda s: (s["agegroup_name"], s["division_name"], s["team_name"]))


def count_round_robin_games_per_division(games):
    divisions = {}
    for game in games:
        if not game.is_round_robin:
            continue
        entry = divisions.setdefault(game.division_id, {
            "agegroup_name": game.agegroup.name,
            "division_name": game.division.name,
            "pool_size": game.division.active_teams().count(),
            "game_count": 0,
        })
        entry["game_count"] += 1
    return sorted(divisions.values(), key=lambda d: (d["agegroup_name"], d["division_name"]))


def list_bracket_games(games):
    return [
        {
            "agegroup_name": g.agegroup.name,
            "division_name": g.division.name,
            "field_name": g.field.name if g.field else "",
            "gdate": g.gdate,
            "t1_name": g.t1_name,
            "t2_name": g.t2_name,
            "t1_type": g.t1_type,
            "t2_type": g.t2_type,
        }
        for g in games
        if not g.is_round_robin
    ]


def run_qa_validation(job_id):
    """Run every QA check for a job's scheduled games."""
    job = get_object_or_404(Job, pk=job_id)
    games = list(
        Game.objects.filter(job=job, gdate__isnull=False)
        .select_related("agegroup", "division", "field", "t1", "t2")
        .order_by("gdate", "id")
    )
    team_ids = {a["team_id"] for a in _team_appearances(games)}
    teams = Team.objects.filter(pk__in=team_ids).select_related("club")
    ranks = {t.id: t.div_rank for t in teams}
    clubs = {t.id: t.club.name if t.club else "" for t in teams}

    results = {
        "total_games": len(games),
        "unscheduled_teams": find_unscheduled_teams(job, games),
        "field_double_bookings": find_field_double_bookings(games),
        "team_double_bookings": find_team_double_bookings(games),
        "rank_mismatches": find_rank_mismatches(games, ranks),
        "back_to_back": find_back_to_back_games(games, settings.LEAGUE_BACK_TO_BACK_MINUTES),
        "repeated_matchups": find_repeated_matchups(games),
        "inactive_teams_in_games": find_inactive_teams_in_games(games),
        "games_per_date": count_games_per_date(games),
        "games_per_team": count_games_per_team(games),
        "games_per_team_per_day": count_games_per_team_per_day(games, clubs),
        "games_per_field_per_day": count_games_per_field_per_day(games),
        "game_spreads": compute_game_spreads(games),
        "rr_games_per_division": count_round_robin_games_per_division(games),
        "bracket_games": list_bracket_games(games),
    }

    problem_keys = (
        "unscheduled_teams",
        "field_double_bookings",
        "team_double_bookings",
        "rank_mismatches",
        "back_to_back",
        "repeated_matchups",
        "inactive_teams_in_games",
    )
    results["checks"] = {
        key: {"passed": not results[key], "count": len(results[key])} for key in problem_keys
    }
    logger.info(
        f"QA validation for job {job_id}: {len(games)} games, "
        f"{sum(1 for c in results['checks'].values() if not c['passed'])} checks with findings"
    )
    return results
