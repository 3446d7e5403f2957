"""
Pool assignment service functions.

Moves teams between divisions (pools). When a move crosses agegroups the
team's fees are recalculated against the new agegroup. Teams that already
appear on the schedule can only be moved as a symmetrical swap, where each
moved team takes over the rank of its partner so scheduled games keep their
pairings.
"""

import logging

from django.db import transaction
from django.shortcuts import get_object_or_404

from league.models import Division, Game, Team
from .clubs import build_fee_calculator, calculate_fees_for_team
from .game_operations import synchronize_division_games

logger = logging.getLogger(__name__)


def is_dropped_agegroup(agegroup):
    return agegroup is not None and "DROPPED" in agegroup.name.upper()


def renumber_div_ranks(division):
    """Close gaps so the division's active teams are ranked 1..N."""
    for rank, team in enumerate(division.active_teams().order_by("div_rank", "id"), start=1):
        if team.div_rank != rank:
            team.div_rank = rank
            team.save(update_fields=["div_rank", "updated_at"])


def next_div_rank(division):
    ranks = division.teams.filter(is_active=True).values_list("div_rank", flat=True)
    return max(ranks, default=0) + 1


def scheduled_team_ids(job):
    ids = set()
    for t1_id, t2_id in Game.objects.filter(job=job).values_list("t1_id", "t2_id"):
        ids.update(i for i in (t1_id, t2_id) if i)
    return ids


def get_division_options(job_id):
    divisions = (
        Division.objects.filter(agegroup__job_id=job_id)
        .select_related("agegroup")
        .order_by("agegroup__sort_order", "agegroup__name", "name")
    )
    return [
        {
            "division_id": d.id,
            "division_name": d.name,
            "agegroup_id": d.agegroup_id,
            "agegroup_name": d.agegroup.name,
            "team_count": d.active_teams().count(),
            "is_dropped": is_dropped_agegroup(d.agegroup),
        }
        for d in divisions
    ]


def _load_transfer(job_id, source_division_id, target_division_id):
    if source_division_id == target_division_id:
        raise ValueError("Source and target divisions must be different.")
    source = get_object_or_404(Division, pk=source_division_id, agegroup__job_id=job_id)
    target = get_object_or_404(Division, pk=target_division_id, agegroup__job_id=job_id)
    return source, target


def preview_transfer(job_id, source_division_id, target_division_id, source_team_ids, target_team_ids=None):
    """Describe what a transfer would do to each team's fees without changing anything."""
    source, target = _load_transfer(job_id, source_division_id, target_division_id)
    target_team_ids = target_team_ids or []
    job = source.agegroup.job
    agegroup_changes = source.agegroup_id != target.agegroup_id
    scheduled = scheduled_team_ids(job)
    calculator = build_fee_calculator()

    previews = []
    requires_symmetrical = False
    moves = [(tid, source, target, "source-to-target") for tid in source_team_ids]
    moves += [(tid, target, source, "target-to-source") for tid in target_team_ids]
    for team_id, from_division, to_division, direction in moves:
        team = get_object_or_404(Team, pk=team_id, division=from_division)
        if team.id in scheduled and not target_team_ids:
            requires_symmetrical = True

        new_fee_base = team.fee_base
        new_fee_total = team.fee_total
        if agegroup_changes:
            new_fee_base, new_fee_processing = calculate_fees_for_team(
                job, to_division.agegroup, team.paid_total, team.fee_total, calculator
            )
            new_fee_total = new_fee_base + new_fee_processing

        previews.append({
            "team_id": team.id,
            "team_name": team.name,
            "direction": direction,
            "agegroup_changes": agegroup_changes,
            "current_fee_base": str(team.fee_base),
            "current_fee_total": str(team.fee_total),
            "new_fee_base": str(new_fee_base),
            "new_fee_total": str(new_fee_total),
            "fee_delta": str(new_fee_total - team.fee_total),
            "is_scheduled": team.id in scheduled,
            "warning": (
                "Team will be deactivated (moved to Dropped Teams)."
                if is_dropped_agegroup(to_division.agegroup)
                else None
            ),
        })

    return {"teams": previews, "requires_symmetrical_swap": requires_symmetrical}


def _move_team(team, to_division, new_rank, calculator, agegroup_changes):
    team.division = to_division
    team.agegroup = to_division.agegroup
    team.div_rank = new_rank
    deactivated = False
    if is_dropped_agegroup(to_division.agegroup) and team.is_active:
        team.is_active = False
        deactivated = True

    fee_change = None
    if agegroup_changes:
        old_total = team.fee_total
        fee_base, fee_processing = calculate_fees_for_team(
            team.job, to_division.agegroup, team.paid_total, team.fee_total, calculator
        )
        team.fee_base = fee_base
        team.fee_processing = fee_processing
        team.fee_total = fee_base + fee_processing
        team.owed_total = team.fee_total - team.paid_total
        fee_change = {"team_id": team.id, "old_fee_total": str(old_total), "new_fee_total": str(team.fee_total)}

    team.save()
    return deactivated, fee_change


@transaction.atomic
def transfer_teams(
    job_id,
    source_division_id,
    target_division_id,
    source_team_ids,
    target_team_ids=None,
    symmetrical_swap=False,
):
    """
    Move teams from one division to another.

    A symmetrical swap moves ``source_team_ids`` and ``target_team_ids`` in
    opposite directions, pairing them up by position so each team inherits its
    partner's rank. Ordinary moves append teams at the end of the target
    division and close the rank gaps they leave behind.
    """
    source, target = _load_transfer(job_id, source_division_id, target_division_id)
    target_team_ids = list(target_team_ids or [])
    job = source.agegroup.job
    agegroup_changes = source.agegroup_id != target.agegroup_id
    calculator = build_fee_calculator()

    if symmetrical_swap and len(source_team_ids) != len(target_team_ids):
        raise ValueError("Symmetrical swap requires equal numbers of source and target teams.")

    source_teams = list(Team.objects.select_for_update().filter(pk__in=source_team_ids, division=source))
    if not source_teams:
        raise ValueError("No valid source teams found for transfer.")
    target_teams = []
    if symmetrical_swap:
        target_teams = list(Team.objects.select_for_update().filter(pk__in=target_team_ids, division=target))
        if len(target_teams) != len(target_team_ids) or len(source_teams) != len(source_team_ids):
            raise ValueError("Every swapped team must belong to its listed division.")

    scheduled = scheduled_team_ids(job)
    if not symmetrical_swap and any(t.id in scheduled for t in source_teams):
        raise ValueError(
            "One or more teams are already scheduled; use a symmetrical swap to preserve schedule pairings."
        )

    source_ranks = {t.id: t.div_rank for t in source_teams}
    target_ranks = {t.id: t.div_rank for t in target_teams}
    fee_changes = []
    teams_deactivated = 0

    for team in source_teams:
        if symmetrical_swap:
            partner_id = target_team_ids[source_team_ids.index(team.id)]
            new_rank = target_ranks[partner_id]
        else:
            new_rank = next_div_rank(target)
        deactivated, fee_change = _move_team(team, target, new_rank, calculator, agegroup_changes)
        teams_deactivated += deactivated
        if fee_change:
            fee_changes.append(fee_change)

    for team in target_teams:
        partner_id = source_team_ids[target_team_ids.index(team.id)]
        deactivated, fee_change = _move_team(team, source, source_ranks[partner_id], calculator, agegroup_changes)
        teams_deactivated += deactivated
        if fee_change:
            fee_changes.append(fee_change)

    if symmetrical_swap:
        games_updated = synchronize_division_games(source) + synchronize_division_games(target)
    else:
        renumber_div_ranks(source)
        games_updated = 0

    moved = len(source_teams) + len(target_teams)
    logger.info(
        f"Pool transfer in job {job_id}: {moved} teams moved from division {source.id} to {target.id}, "
        f"{len(fee_changes)} fees recalculated, {teams_deactivated} deactivated"
    )
    return {
        "status": "success",
        "teams_moved": moved,
        "fees_recalculated": len(fee_changes),
        "fee_changes": fee_changes,
        "teams_deactivated": teams_deactivated,
        "schedule_records_updated": games_updated,
        "message": f"Moved {moved} team(s)",
    }
