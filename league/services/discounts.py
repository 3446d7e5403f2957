"""
Registration fee adjustment service functions.

Applies a discount code across several player registrations at checkout and
keeps each registration's processing fee, total and owed amounts consistent
with the discount.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from league.calculators import (
    DiscountCalculator,
    ZERO,
    compute_registration_totals,
    percent_of,
    round_money,
    to_decimal,
)
from league.models import DiscountCode, Job, Registration

logger = logging.getLogger(__name__)


def get_processing_fee_percent(job):
    if job.processing_fee_percent is not None:
        return to_decimal(job.processing_fee_percent)
    return to_decimal(settings.LEAGUE_CREDIT_CARD_PERCENT)


def find_valid_discount_code(job, code, now=None):
    """Active code matching case-insensitively whose date window contains now."""
    if not code or not code.strip():
        return None
    now = now or timezone.now()
    return DiscountCode.objects.filter(
        job=job,
        code_name__iexact=code.strip(),
        is_active=True,
        start_date__lte=now,
        end_date__gte=now,
    ).first()


def reduce_processing_fee_proportionally(registration, adjustment_amount, job):
    """
    Lower a registration's processing fee in step with a fee reduction.

    A $10 discount on a job charging 3.5% processing takes $0.35 off the
    processing fee. Returns the reduction actually applied. The registration
    is modified in place but not saved.
    """
    adjustment_amount = to_decimal(adjustment_amount)
    if registration is None or adjustment_amount <= 0:
        return ZERO
    if not job.add_processing_fees:
        return ZERO
    if registration.fee_processing <= 0:
        return ZERO

    reduction = percent_of(adjustment_amount, get_processing_fee_percent(job))
    reduction = min(reduction, registration.fee_processing)
    if reduction > 0:
        registration.fee_processing -= reduction
        registration.owed_total = max(ZERO, registration.owed_total - reduction)
    return reduction


def split_discount(items, is_percentage, code_amount):
    """
    Work out each player's share of a discount.

    Percentage codes apply to every item independently. Dollar codes are
    capped at the combined total and split in proportion to each item's
    amount; any rounding drift lands on the largest item so the shares add up
    to the cap exactly.
    """
    shares = {}
    if is_percentage:
        for item in items:
            share = DiscountCalculator.calculate(item["amount"], code_amount, True)
            if share > 0:
                shares[item["player_id"]] = share
        return shares

    total = sum(item["amount"] for item in items)
    cap = min(code_amount, total)
    prelim = {
        item["player_id"]: round_money(cap * item["amount"] / total)
        for item in items
    }
    drift = cap - sum(prelim.values())
    if drift != 0:
        primary = max(items, key=lambda item: item["amount"])
        prelim[primary["player_id"]] += drift

    for player_id, share in prelim.items():
        if share > 0:
            shares[player_id] = share
    return shares


def serialize_financials(registration):
    return {
        "fee_base": str(registration.fee_base),
        "fee_processing": str(registration.fee_processing),
        "fee_discount": str(registration.fee_discount),
        "fee_donation": str(registration.fee_donation),
        "fee_total": str(registration.fee_total),
        "owed_total": str(registration.owed_total),
        "paid_total": str(registration.paid_total),
    }


def discount_response(success, message, total_discount=ZERO, results=None, updated_financials=None):
    results = results or []
    success_count = sum(1 for r in results if r["success"])
    return {
        "success": success,
        "message": message,
        "total_discount": str(total_discount),
        "processed_count": len(results),
        "success_count": success_count,
        "failure_count": len(results) - success_count,
        "results": results,
        "updated_financials": updated_financials or {},
    }


def player_result(player_id, player_name, success, message, discount=ZERO):
    return {
        "player_id": player_id,
        "player_name": player_name,
        "success": success,
        "message": message,
        "discount": str(discount),
    }


@transaction.atomic
def apply_discount_to_players(job_id, code, items):
    """
    Apply a discount code to several player registrations.

    ``items`` is a list of ``{"player_id": <registration id>, "amount": <fee>}``.
    """
    job = get_object_or_404(Job, pk=job_id)
    discount_code = find_valid_discount_code(job, code)
    if discount_code is None:
        return discount_response(False, "Invalid or expired discount code")

    valid_items = []
    for item in items or []:
        if not item or not item.get("player_id"):
            continue
        amount = to_decimal(item.get("amount"))
        if amount > 0:
            valid_items.append({"player_id": str(item["player_id"]), "amount": amount})
    if not valid_items:
        return discount_response(False, "No valid players for discount")

    code_amount = to_decimal(discount_code.amount)
    if code_amount <= 0:
        return discount_response(False, "Discount code has no discount amount")

    shares = split_discount(valid_items, discount_code.is_percentage, code_amount)
    total_discount = sum(shares.values(), ZERO)
    processing_percent = get_processing_fee_percent(job) if job.add_processing_fees else ZERO

    registrations = {
        str(r.id): r
        for r in Registration.objects.select_for_update().filter(
            job=job,
            is_active=True,
            pk__in=[i["player_id"] for i in valid_items if i["player_id"].isdigit()],
        )
    }

    results = []
    updated_financials = {}
    for item in valid_items:
        player_id = item["player_id"]
        registration = registrations.get(player_id)
        if registration is None:
            results.append(player_result(player_id, "Unknown", False, "Player registration not found"))
            continue
        if registration.fee_discount > 0:
            results.append(player_result(
                player_id, registration.person_name, False, "Discount already applied to this player"
            ))
            continue
        share = shares.get(player_id, ZERO)
        if share <= 0:
            results.append(player_result(player_id, registration.person_name, False, "No discount applicable"))
            continue

        new_discount = registration.fee_discount + share
        reduce_processing_fee_proportionally(registration, share, job)
        fee_processing, fee_total, owed_total = compute_registration_totals(
            registration.fee_base,
            new_discount,
            registration.fee_donation,
            registration.paid_total,
            processing_percent,
            registration.fee_processing if registration.fee_processing > 0 else None,
        )
        registration.fee_discount = new_discount
        registration.fee_processing = fee_processing
        registration.fee_total = fee_total
        registration.owed_total = owed_total
        registration.discount_code = discount_code
        registration.save()

        updated_financials[player_id] = serialize_financials(registration)
        results.append(player_result(
            player_id, registration.person_name, True, f"Discount applied: ${share:.2f}", share
        ))

    success_count = sum(1 for r in results if r["success"])
    message = (
        f"Successfully applied discount to {success_count} player(s)"
        if success_count
        else "No discounts were applied"
    )
    logger.info(
        f"Applied discount '{discount_code.code_name}' in job {job_id}: "
        f"total {total_discount}, {success_count}/{len(results)} succeeded"
    )
    return discount_response(success_count > 0, message, total_discount, results, updated_financials)
