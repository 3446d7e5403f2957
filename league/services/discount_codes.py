"""
Discount code management service functions.

This module handles CRUD for a job's discount codes, including bulk
generation of numbered codes and batch activation.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone

from league.calculators import round_money, to_decimal
from league.models import DiscountCode, Job

logger = logging.getLogger(__name__)


def serialize_discount_code(code, usage_count=None, now=None):
    now = now or timezone.now()
    if usage_count is None:
        usage_count = code.registrations.count()
    return {
        "ai": code.id,
        "code_name": code.code_name,
        "discount_type": code.discount_type,
        "amount": str(code.amount),
        "start_date": code.start_date.isoformat(),
        "end_date": code.end_date.isoformat(),
        "is_active": code.is_active,
        "is_expired": code.end_date < now,
        "usage_count": usage_count,
        "created_at": code.created_at.isoformat() if code.created_at else None,
    }


def validate_code_terms(is_percentage, amount, start_date, end_date):
    if end_date <= start_date:
        raise ValueError("End date must be after start date.")
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValueError("Discount amount must be greater than zero.")
    if is_percentage and amount > Decimal(100):
        raise ValueError("Percentage discounts cannot exceed 100.")
    return round_money(amount)


def code_name_exists(job, code_name, exclude_id=None):
    codes = DiscountCode.objects.filter(job=job, code_name__iexact=code_name)
    if exclude_id is not None:
        codes = codes.exclude(pk=exclude_id)
    return codes.exists()


def get_discount_codes(job_id):
    job = get_object_or_404(Job, pk=job_id)
    now = timezone.now()
    codes = (
        DiscountCode.objects.filter(job=job)
        .annotate(usage=Count("registrations"))
        .order_by("code_name")
    )
    return [serialize_discount_code(code, code.usage, now) for code in codes]


@transaction.atomic
def add_discount_code(job_id, code_name, is_percentage, amount, start_date, end_date):
    job = get_object_or_404(Job, pk=job_id)
    code_name = (code_name or "").strip()
    if not code_name:
        raise ValueError("Discount code name is required.")
    if code_name_exists(job, code_name):
        raise ValueError(f"Discount code '{code_name}' already exists for this job.")
    amount = validate_code_terms(is_percentage, amount, start_date, end_date)

    code = DiscountCode.objects.create(
        job=job,
        code_name=code_name,
        is_percentage=is_percentage,
        amount=amount,
        start_date=start_date,
        end_date=end_date,
        is_active=True,
    )
    logger.info(f"Added discount code '{code_name}' to job {job_id}")
    return serialize_discount_code(code, usage_count=0)


@transaction.atomic
def bulk_add_discount_codes(
    job_id, prefix, count, start_number, is_percentage, amount, start_date, end_date, suffix=""
):
    """Create numbered codes prefix + 001 + suffix...; nothing is created if any name is taken."""
    job = get_object_or_404(Job, pk=job_id)
    if count < 1:
        raise ValueError("Count must be at least 1.")
    amount = validate_code_terms(is_percentage, amount, start_date, end_date)

    code_names = [f"{prefix}{start_number + i:03d}{suffix}" for i in range(count)]
    for code_name in code_names:
        if code_name_exists(job, code_name):
            raise ValueError(
                f"Discount code '{code_name}' already exists. Bulk generation cancelled (all-or-nothing)."
            )

    codes = [
        DiscountCode.objects.create(
            job=job,
            code_name=code_name,
            is_percentage=is_percentage,
            amount=amount,
            start_date=start_date,
            end_date=end_date,
            is_active=True,
        )
        for code_name in code_names
    ]
    logger.info(f"Bulk added {len(codes)} discount codes to job {job_id} ({code_names[0]}..{code_names[-1]})")
    return [serialize_discount_code(code, usage_count=0) for code in codes]


@transaction.atomic
def update_discount_code(code_id, is_percentage, amount, start_date, end_date, is_active):
    """Update a code's terms. The code name itself is not editable."""
    code = get_object_or_404(DiscountCode, pk=code_id)
    code.amount = validate_code_terms(is_percentage, amount, start_date, end_date)
    code.is_percentage = is_percentage
    code.start_date = start_date
    code.end_date = end_date
    code.is_active = is_active
    code.save()
    return serialize_discount_code(code)


@transaction.atomic
def delete_discount_code(code_id):
    code = get_object_or_404(DiscountCode, pk=code_id)
    usage_count = code.registrations.count()
    if usage_count > 0:
        return {
            "status": "error",
            "message": f"Cannot delete discount code '{code.code_name}' because it has been used {usage_count} time(s).",
        }

    code_name = code.code_name
    code.delete()
    logger.info(f"Deleted discount code '{code_name}'")
    return {"status": "success", "message": f"Discount code '{code_name}' deleted"}


@transaction.atomic
def batch_update_status(job_id, code_ids, is_active):
    """Activate or deactivate several codes at once; ids from other jobs are ignored."""
    job = get_object_or_404(Job, pk=job_id)
    updated = DiscountCode.objects.filter(job=job, pk__in=code_ids).update(is_active=is_active)
    logger.info(f"Set is_active={is_active} on {updated} discount codes in job {job_id}")
    return updated
