"""
Fee and discount arithmetic.

These are pure functions over Decimal amounts. They never touch the database,
so services call them with values read off models and write the results back.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value):
    """Coerce ints, floats, strings and None to Decimal without float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount, percent):
    return round_money(to_decimal(amount) * to_decimal(percent) / Decimal(100))


class DiscountCalculator:
    """Discount amount for a single fee."""

    @staticmethod
    def calculate(base_amount, discount_value, is_percentage):
        base = to_decimal(base_amount)
        value = to_decimal(discount_value)
        if base <= 0 or value <= 0:
            return ZERO

        if is_percentage:
            discount = percent_of(base, value)
        else:
            discount = value

        # Never discount more than the fee itself
        return max(min(discount, base), ZERO)


class TeamFeeCalculator:
    """
    Computes (fee_base, fee_processing) for a team.

    fee_base is the full roster + team fee when the job requires full payment,
    otherwise just the roster fee (the deposit). Processing is only charged when
    the job passes card fees on, and for deposits only when the job opts in.
    A team that has already paid its current total owes no further processing.
    """

    def __init__(self, default_processing_fee_percent=None):
        if default_processing_fee_percent is None:
            default_processing_fee_percent = settings.LEAGUE_DEFAULT_PROCESSING_FEE_PERCENT
        self.default_processing_fee_percent = to_decimal(default_processing_fee_percent)

    def calculate_team_fees(
        self,
        roster_fee,
        team_fee,
        teams_full_payment_required,
        add_processing_fees,
        apply_processing_fees_to_team_deposit,
        job_processing_fee_percent=None,
        paid_total=0,
        current_fee_total=0,
    ):
        roster_fee = to_decimal(roster_fee)
        team_fee = to_decimal(team_fee)
        paid_total = to_decimal(paid_total)
        current_fee_total = to_decimal(current_fee_total)

        if teams_full_payment_required:
            fee_base = round_money(roster_fee + team_fee)
        else:
            fee_base = round_money(roster_fee)

        # current_fee_total == 0 is a brand new team, which cannot be paid up yet
        if current_fee_total > 0 and paid_total >= current_fee_total:
            return fee_base, ZERO

        if not add_processing_fees or fee_base <= 0:
            return fee_base, ZERO
        if not teams_full_payment_required and not apply_processing_fees_to_team_deposit:
            return fee_base, ZERO

        percent = (
            to_decimal(job_processing_fee_percent)
            if job_processing_fee_percent is not None
            else self.default_processing_fee_percent
        )
        return fee_base, percent_of(fee_base, percent)


class InsurableAmountCalculator:
    """Amounts sent to the insurance quote widget, in integer cents."""

    @staticmethod
    def to_cents(amount):
        return int(to_decimal(amount) * 100)

    @classmethod
    def from_centralized(cls, centralized_fee, per_registrant_fee, team_fee, fee_total):
        for candidate in (centralized_fee, per_registrant_fee, team_fee):
            if to_decimal(candidate) > 0:
                return cls.to_cents(candidate)
        return cls.to_cents(fee_total)


def resolve_player_fee(agegroup_override, league_override, per_registrant_fee, team_fee, roster_fee):
    """Fee charged to one player, in priority order of the configured overrides."""
    agegroup_override = to_decimal(agegroup_override)
    league_override = to_decimal(league_override)
    per_registrant_fee = to_decimal(per_registrant_fee)
    team_fee = to_decimal(team_fee)
    roster_fee = to_decimal(roster_fee)

    if agegroup_override > 0:
        return agegroup_override
    if league_override > 0:
        return league_override
    if per_registrant_fee > 0:
        return per_registrant_fee
    if team_fee > 0 and roster_fee > 0:
        return team_fee
    if roster_fee > 0:
        return roster_fee
    return ZERO


def resolve_player_deposit(per_registrant_deposit, team_fee, roster_fee):
    per_registrant_deposit = to_decimal(per_registrant_deposit)
    if per_registrant_deposit > 0:
        return per_registrant_deposit
    if to_decimal(team_fee) > 0 and to_decimal(roster_fee) > 0:
        return to_decimal(roster_fee)
    return ZERO


def compute_registration_totals(
    fee_base,
    fee_discount=0,
    fee_donation=0,
    paid_total=0,
    processing_percent=0,
    processing_override=None,
):
    """Return (fee_processing, fee_total, owed_total) for a registration."""
    fee_base = to_decimal(fee_base)
    fee_discount = to_decimal(fee_discount)
    fee_donation = to_decimal(fee_donation)
    paid_total = to_decimal(paid_total)

    if processing_override is not None:
        fee_processing = round_money(processing_override)
    else:
        discounted = fee_base - fee_discount
        fee_processing = percent_of(discounted, processing_percent) if discounted > 0 else ZERO

    fee_total = round_money(fee_base + fee_processing - fee_discount + fee_donation)
    owed_total = max(round_money(fee_total - paid_total), ZERO)
    return fee_processing, fee_total, owed_total
