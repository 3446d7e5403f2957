from datetime import datetime
from decimal import Decimal
from django.db import models


ROUND_ROBIN_TYPE = "T"

WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def money_field(**kwargs):
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(max_digits=10, decimal_places=2, **kwargs)


class Customer(models.Model):
    """A tenant organization that owns one or more jobs."""

    name = models.CharField(max_length=150, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class JobManager(models.Manager):
    """Custom manager that filters out deleted jobs by default."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class Job(models.Model):
    """A tenant-scoped event or season: scopes registrations, teams and schedules."""

    customer = models.ForeignKey(Customer, related_name="jobs", on_delete=models.CASCADE)
    name = models.CharField(max_length=150, help_text="e.g., Spring League 2025")
    year = models.PositiveIntegerField(null=True, blank=True)
    processing_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Credit card processing percent for this job (falls back to the site default if not set)",
    )
    add_processing_fees = models.BooleanField(
        default=False,
        help_text="Pass credit card processing fees on to registrants",
    )
    apply_processing_fees_to_team_deposit = models.BooleanField(
        default=False,
        help_text="Charge processing fees on team deposits when full payment is not required",
    )
    teams_full_payment_required = models.BooleanField(
        default=False,
        help_text="Teams pay roster fee plus team fee up front instead of a deposit",
    )
    player_fee_override = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        help_text="League-wide player fee that overrides team-derived fees",
    )
    fields = models.ManyToManyField("Field", related_name="jobs", blank=True)
    is_deleted = models.BooleanField(
        default=False,
        help_text="Marks this job as soft-deleted (hidden from normal queries)",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = JobManager()
    all_objects = models.Manager()

    class Meta:
        unique_together = ("customer", "name")

    def __str__(self):
        return self.name


class Agegroup(models.Model):
    job = models.ForeignKey(Job, related_name="agegroups", on_delete=models.CASCADE)
    name = models.CharField(max_length=100, help_text="e.g., 2030 Boys")
    roster_fee = money_field(help_text="Deposit charged per team")
    team_fee = money_field(help_text="Balance charged per team on top of the roster fee")
    player_fee_override = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
    )
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = ("job", "name")
        ordering = ["sort_order", "name"]

    def __str__(self):
        return self.name


class Division(models.Model):
    agegroup = models.ForeignKey(Agegroup, related_name="divisions", on_delete=models.CASCADE)
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)

    class Meta:
        unique_together = ("agegroup", "name")
        ordering = ["name"]

    def __str__(self):
        return f"{self.agegroup.name} {self.name}"

    def active_teams(self):
        return self.teams.filter(is_active=True).order_by("div_rank")


class Club(models.Model):
    name = models.CharField(max_length=150, unique=True)
    state = models.CharField(max_length=2, blank=True, default="", help_text="Two-letter state code")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Field(models.Model):
    """A physical playing field. Fields are shared across jobs and assigned per job."""

    name = models.CharField(max_length=100, unique=True)
    address = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Team(models.Model):
    job = models.ForeignKey(Job, related_name="teams", on_delete=models.CASCADE)
    agegroup = models.ForeignKey(Agegroup, related_name="teams", on_delete=models.PROTECT)
    division = models.ForeignKey(
        Division, related_name="teams", on_delete=models.SET_NULL, null=True, blank=True
    )
    club = models.ForeignKey(
        Club, related_name="teams", on_delete=models.SET_NULL, null=True, blank=True
    )
    club_rep_registration = models.ForeignKey(
        "Registration",
        related_name="rep_teams",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    name = models.CharField(max_length=150)
    div_rank = models.PositiveIntegerField(
        default=0, help_text="Team number within its division, used by pairings"
    )
    is_active = models.BooleanField(default=True)
    per_registrant_fee = money_field()
    per_registrant_deposit = money_field()
    fee_base = money_field()
    fee_processing = money_field()
    fee_total = money_field()
    paid_total = money_field()
    owed_total = money_field()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["agegroup", "division", "div_rank"]

    def __str__(self):
        return self.name


class Registration(models.Model):
    ROLE_PLAYER = "Player"
    ROLE_STAFF = "Staff"
    ROLE_CLUB_REP = "ClubRep"
    ROLE_CHOICES = [
        (ROLE_PLAYER, "Player"),
        (ROLE_STAFF, "Staff"),
        (ROLE_CLUB_REP, "Club Rep"),
    ]

    job = models.ForeignKey(Job, related_name="registrations", on_delete=models.CASCADE)
    team = models.ForeignKey(
        Team, related_name="registrations", on_delete=models.SET_NULL, null=True, blank=True
    )
    club = models.ForeignKey(
        Club, related_name="registrations", on_delete=models.SET_NULL, null=True, blank=True
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_PLAYER)
    person_name = models.CharField(max_length=150)
    email = models.EmailField(blank=True, default="")
    fee_base = money_field()
    fee_processing = money_field()
    fee_discount = money_field()
    fee_donation = money_field()
    fee_total = money_field()
    paid_total = money_field()
    owed_total = money_field()
    discount_code = models.ForeignKey(
        "DiscountCode",
        related_name="registrations",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.person_name} ({self.role})"


class DiscountCode(models.Model):
    job = models.ForeignKey(Job, related_name="discount_codes", on_delete=models.CASCADE)
    code_name = models.CharField(max_length=50)
    is_percentage = models.BooleanField(
        default=False, help_text="Amount is a percentage of the fee rather than a dollar amount"
    )
    amount = money_field()
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("job", "code_name")
        ordering = ["code_name"]

    def __str__(self):
        return self.code_name

    @property
    def discount_type(self):
        return "Percentage" if self.is_percentage else "DollarAmount"


class Pairing(models.Model):
    """A matchup template for a team count, placed onto the schedule as a Game."""

    job = models.ForeignKey(Job, related_name="pairings", on_delete=models.CASCADE)
    team_count = models.PositiveIntegerField()
    game_number = models.PositiveIntegerField()
    rnd = models.PositiveIntegerField()
    t1 = models.PositiveIntegerField(default=0)
    t2 = models.PositiveIntegerField(default=0)
    t1_type = models.CharField(max_length=2, default=ROUND_ROBIN_TYPE)
    t2_type = models.CharField(max_length=2, default=ROUND_ROBIN_TYPE)
    t1_gno_ref = models.PositiveIntegerField(null=True, blank=True)
    t2_gno_ref = models.PositiveIntegerField(null=True, blank=True)
    t1_annotation = models.CharField(max_length=100, blank=True, default="")
    t2_annotation = models.CharField(max_length=100, blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["team_count", "rnd", "game_number"]

    def __str__(self):
        return f"TCnt {self.team_count} R{self.rnd} G{self.game_number}: {self.t1_type}{self.t1} vs {self.t2_type}{self.t2}"

    @property
    def is_round_robin(self):
        return self.t1_type == ROUND_ROBIN_TYPE and self.t2_type == ROUND_ROBIN_TYPE


class TimeslotDate(models.Model):
    agegroup = models.ForeignKey(Agegroup, related_name="timeslot_dates", on_delete=models.CASCADE)
    division = models.ForeignKey(
        Division,
        related_name="timeslot_dates",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        help_text="Leave empty to apply to every division in the agegroup",
    )
    gdate = models.DateField()
    rnd = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["gdate", "rnd"]

    def __str__(self):
        return f"{self.gdate} (Round {self.rnd})"


class TimeslotField(models.Model):
    agegroup = models.ForeignKey(Agegroup, related_name="timeslot_fields", on_delete=models.CASCADE)
    division = models.ForeignKey(
        Division,
        related_name="timeslot_fields",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
    )
    field = models.ForeignKey(Field, related_name="timeslots", on_delete=models.CASCADE)
    dow = models.CharField(max_length=10, help_text="Weekday name, e.g., Saturday")
    start_time = models.TimeField()
    interval_minutes = models.PositiveIntegerField(default=60)
    max_games = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["dow", "field__name", "start_time"]

    def __str__(self):
        return f"{self.field.name} {self.dow} {self.start_time:%H:%M} x{self.max_games}"


class Game(models.Model):
    job = models.ForeignKey(Job, related_name="games", on_delete=models.CASCADE)
    agegroup = models.ForeignKey(Agegroup, related_name="games", on_delete=models.CASCADE)
    division = models.ForeignKey(Division, related_name="games", on_delete=models.CASCADE)
    field = models.ForeignKey(
        Field, related_name="games", on_delete=models.SET_NULL, null=True, blank=True
    )
    gdate = models.DateTimeField(null=True, blank=True)
    rnd = models.PositiveIntegerField(default=1)
    game_number = models.PositiveIntegerField(default=0)
    t1_no = models.PositiveIntegerField(default=0)
    t2_no = models.PositiveIntegerField(default=0)
    t1_type = models.CharField(max_length=2, default=ROUND_ROBIN_TYPE)
    t2_type = models.CharField(max_length=2, default=ROUND_ROBIN_TYPE)
    t1 = models.ForeignKey(
        Team, related_name="games_as_t1", on_delete=models.SET_NULL, null=True, blank=True
    )
    t2 = models.ForeignKey(
        Team, related_name="games_as_t2", on_delete=models.SET_NULL, null=True, blank=True
    )
    t1_name = models.CharField(max_length=150, blank=True, default="")
    t2_name = models.CharField(max_length=150, blank=True, default="")
    t1_score = models.PositiveIntegerField(null=True, blank=True)
    t2_score = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["gdate", "field__name"]

    def __str__(self):
        when = self.gdate.strftime("%Y-%m-%d %H:%M") if self.gdate else "unscheduled"
        return f"{when}: {self.t1_name or self.t1_no} vs {self.t2_name or self.t2_no}"

    @property
    def is_round_robin(self):
        return self.t1_type == ROUND_ROBIN_TYPE and self.t2_type == ROUND_ROBIN_TYPE

    @property
    def weekday(self):
        return WEEKDAY_NAMES[self.gdate.weekday()] if self.gdate else None

    def to_dict(self):
        return {
            "gid": self.id,
            "gdate": self.gdate.isoformat() if isinstance(self.gdate, datetime) else None,
            "field_id": self.field_id,
            "field_name": self.field.name if self.field else None,
            "rnd": self.rnd,
            "game_number": self.game_number,
            "t1_no": self.t1_no,
            "t2_no": self.t2_no,
            "t1_type": self.t1_type,
            "t2_type": self.t2_type,
            "t1_id": self.t1_id,
            "t2_id": self.t2_id,
            "t1_name": self.t1_name,
            "t2_name": self.t2_name,
            "t1_score": self.t1_score,
            "t2_score": self.t2_score,
        }
