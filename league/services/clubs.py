"""
Club and team registration service functions.

This module handles club search with fuzzy name matching, club rep
registration with duplicate-club detection, team registration under a club
and bulk recalculation of team fees when a job's fee settings change.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404

from league.calculators import (
    InsurableAmountCalculator,
    TeamFeeCalculator,
    ZERO,
    resolve_player_deposit,
    resolve_player_fee,
)
from league.club_matching import ClubNameMatcher
from league.models import Agegroup, Club, Job, Registration, Team

logger = logging.getLogger(__name__)

EXCLUDED_AGEGROUP_MARKERS = ("WAITLIST", "DROPPED")


def search_clubs(query, state=None):
    """Return up to five clubs whose names resemble the query, best match first."""
    if not query or not query.strip() or len(query) < 3:
        return []

    normalized = ClubNameMatcher.normalize_club_name(query)
    clubs = Club.objects.all()
    if state:
        clubs = clubs.filter(state=state)

    results = []
    for club in clubs:
        score = ClubNameMatcher.calculate_similarity(
            normalized, ClubNameMatcher.normalize_club_name(club.name)
        )
        if score >= settings.LEAGUE_CLUB_SEARCH_MIN_SCORE:
            results.append({
                "club_id": club.id,
                "club_name": club.name,
                "state": club.state,
                "team_count": club.teams.count(),
                "match_score": score,
            })

    results.sort(key=lambda r: r["match_score"], reverse=True)
    return results[:5]


@transaction.atomic
def register_club_rep(job_id, club_name, person_name, email="", state=""):
    """Create a club and its rep registration, refusing near-duplicates of existing clubs."""
    job = get_object_or_404(Job, pk=job_id)
    club_name = (club_name or "").strip()
    if not club_name:
        raise ValueError("Club name is required")

    similar_clubs = search_clubs(club_name, state or None)
    duplicate = next(
        (c for c in similar_clubs if c["match_score"] >= settings.LEAGUE_CLUB_DUPLICATE_SCORE),
        None,
    )
    if duplicate:
        return {
            "status": "error",
            "message": (
                f"A club with a very similar name already exists: '{duplicate['club_name']}'. "
                "If this is a duplicate registration, your teams may be dropped. "
                "Please verify this is a NEW club or login to the existing club instead."
            ),
            "similar_clubs": similar_clubs,
        }

    # Names are unique across states, and search skips very short names
    existing = Club.objects.filter(name__iexact=club_name).first()
    if existing:
        return {
            "status": "error",
            "message": (
                f"A club named '{existing.name}' already exists. "
                "Please login to the existing club instead."
            ),
            "similar_clubs": similar_clubs,
        }

    club = Club.objects.create(name=club_name, state=state or "")
    registration = Registration.objects.create(
        job=job,
        club=club,
        role=Registration.ROLE_CLUB_REP,
        person_name=person_name,
        email=email or "",
    )
    logger.info(f"Registered club rep {person_name} for new club '{club_name}' in job {job_id}")

    return {
        "status": "success",
        "club": club,
        "registration": registration,
        "similar_clubs": similar_clubs,
        "message": f"Club '{club_name}' registered successfully",
    }


def build_fee_calculator():
    return TeamFeeCalculator(settings.LEAGUE_DEFAULT_PROCESSING_FEE_PERCENT)


def calculate_fees_for_team(job, agegroup, paid_total=ZERO, current_fee_total=ZERO, calculator=None):
    calculator = calculator or build_fee_calculator()
    return calculator.calculate_team_fees(
        roster_fee=agegroup.roster_fee,
        team_fee=agegroup.team_fee,
        teams_full_payment_required=job.teams_full_payment_required,
        add_processing_fees=job.add_processing_fees,
        apply_processing_fees_to_team_deposit=job.apply_processing_fees_to_team_deposit,
        job_processing_fee_percent=job.processing_fee_percent,
        paid_total=paid_total,
        current_fee_total=current_fee_total,
    )


def get_team_player_fees(team):
    """Per-player fee, deposit and insurable amount for a team's registrants."""
    agegroup = team.agegroup
    job = team.job
    player_fee = resolve_player_fee(
        agegroup.player_fee_override,
        job.player_fee_override,
        team.per_registrant_fee,
        agegroup.team_fee,
        agegroup.roster_fee,
    )
    player_deposit = resolve_player_deposit(team.per_registrant_deposit, agegroup.team_fee, agegroup.roster_fee)
    centralized_fee = next(
        (fee for fee in (agegroup.player_fee_override, job.player_fee_override) if fee and fee > 0),
        ZERO,
    )
    return {
        "player_fee": str(player_fee),
        "player_deposit": str(player_deposit),
        "insurable_amount_cents": InsurableAmountCalculator.from_centralized(
            centralized_fee, team.per_registrant_fee, agegroup.team_fee, team.fee_total
        ),
    }


@transaction.atomic
def register_team(job_id, club_rep_registration_id, agegroup_id, team_name):
    """Register a new team for a club rep's club, priced from its agegroup."""
    job = get_object_or_404(Job, pk=job_id)
    rep = get_object_or_404(
        Registration, pk=club_rep_registration_id, job=job, role=Registration.ROLE_CLUB_REP
    )
    agegroup = get_object_or_404(Agegroup, pk=agegroup_id, job=job)

    name = (team_name or "").strip()
    if rep.club:
        name = ClubNameMatcher.clean_team_name(name, rep.club.name)
    if not name:
        raise ValueError("Team name is required")

    fee_base, fee_processing = calculate_fees_for_team(job, agegroup)
    fee_total = fee_base + fee_processing

    team = Team.objects.create(
        job=job,
        agegroup=agegroup,
        club=rep.club,
        club_rep_registration=rep,
        name=name,
        fee_base=fee_base,
        fee_processing=fee_processing,
        fee_total=fee_total,
        paid_total=ZERO,
        owed_total=fee_total,
    )
    logger.info(f"Registered team '{name}' in {agegroup.name} for job {job_id}: fee {fee_total}")

    return {"status": "success", "team": team, "message": f"Team '{name}' registered"}


@transaction.atomic
def recalculate_team_fees(job_id):
    """Recompute fees for every team in a job, leaving waitlisted and dropped teams alone."""
    job = get_object_or_404(Job, pk=job_id)
    calculator = build_fee_calculator()
    updates = []
    skipped_reasons = []

    for team in Team.objects.filter(job=job).select_related("agegroup"):
        agegroup_name = team.agegroup.name.upper()
        if any(marker in agegroup_name for marker in EXCLUDED_AGEGROUP_MARKERS):
            skipped_reasons.append(
                f"Team '{team.name}' in age group '{team.agegroup.name}' (WAITLIST/DROPPED)"
            )
            continue

        old_fee_base = team.fee_base
        old_fee_processing = team.fee_processing
        fee_base, fee_processing = calculate_fees_for_team(
            job, team.agegroup, team.paid_total, team.fee_total, calculator
        )
        if fee_base == old_fee_base and fee_processing == old_fee_processing:
            continue

        team.fee_base = fee_base
        team.fee_processing = fee_processing
        team.fee_total = fee_base + fee_processing
        team.owed_total = team.fee_total - team.paid_total
        team.save(update_fields=["fee_base", "fee_processing", "fee_total", "owed_total", "updated_at"])

        updates.append({
            "team_id": team.id,
            "team_name": team.name,
            "agegroup_name": team.agegroup.name,
            "old_fee_base": str(old_fee_base),
            "new_fee_base": str(fee_base),
            "old_fee_processing": str(old_fee_processing),
            "new_fee_processing": str(fee_processing),
        })
        logger.info(
            f"Team {team.id} ({team.name}): fee_base {old_fee_base} -> {fee_base}, "
            f"fee_processing {old_fee_processing} -> {fee_processing}"
        )

    logger.info(f"Recalculated team fees for job {job_id}: {len(updates)} updated, {len(skipped_reasons)} skipped")
    return {
        "status": "success",
        "updated_count": len(updates),
        "updates": updates,
        "skipped": skipped_reasons,
    }
