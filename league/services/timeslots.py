"""
Timeslot service functions.

Game dates (with the round they host) and field timeslots (a field's weekly
availability on a weekday) are configured per agegroup, optionally narrowed
to a single division. This module covers their CRUD, the various cloning
shortcuts and a capacity preview.
"""

import logging
import math
from datetime import timedelta

from django.db import transaction
from django.shortcuts import get_object_or_404

from league.models import Agegroup, Division, Field, TimeslotDate, TimeslotField, WEEKDAY_NAMES

logger = logging.getLogger(__name__)

DATE_CLONE_OFFSETS = {"day": 1, "week": 7, "round": 0}


def serialize_date(date_row):
    return {
        "ai": date_row.id,
        "agegroup_id": date_row.agegroup_id,
        "division_id": date_row.division_id,
        "gdate": date_row.gdate.isoformat(),
        "rnd": date_row.rnd,
        "dow": WEEKDAY_NAMES[date_row.gdate.weekday()],
    }


def serialize_field_timeslot(timeslot):
    return {
        "ai": timeslot.id,
        "agegroup_id": timeslot.agegroup_id,
        "division_id": timeslot.division_id,
        "field_id": timeslot.field_id,
        "field_name": timeslot.field.name,
        "dow": timeslot.dow,
        "start_time": timeslot.start_time.strftime("%H:%M"),
        "interval_minutes": timeslot.interval_minutes,
        "max_games": timeslot.max_games,
    }


def normalize_dow(dow):
    for name in WEEKDAY_NAMES:
        if name.lower() == (dow or "").strip().lower():
            return name
    raise ValueError(f"Invalid day of week: {dow}")


def next_dow(dow):
    index = WEEKDAY_NAMES.index(normalize_dow(dow))
    return WEEKDAY_NAMES[(index + 1) % len(WEEKDAY_NAMES)]


def validate_slot_settings(interval_minutes, max_games):
    if interval_minutes <= 0:
        raise ValueError("Game start interval must be a positive number of minutes.")
    if max_games <= 0:
        raise ValueError("Max games per field must be at least 1.")


def get_configuration(agegroup_id):
    agegroup = get_object_or_404(Agegroup, pk=agegroup_id)
    dates = agegroup.timeslot_dates.order_by("gdate", "rnd")
    fields = agegroup.timeslot_fields.select_related("field")
    return {
        "agegroup_id": agegroup.id,
        "dates": [serialize_date(d) for d in dates],
        "fields": [serialize_field_timeslot(f) for f in fields],
    }


def get_capacity_preview(agegroup_id):
    """Per weekday: how many game slots the fields offer against one round's worth of games."""
    agegroup = get_object_or_404(Agegroup, pk=agegroup_id)
    max_team_count = max(
        (d.active_teams().count() for d in agegroup.divisions.filter(is_active=True)),
        default=0,
    )
    games_needed = math.ceil(max_team_count / 2) if max_team_count else 0

    by_dow = {}
    for timeslot in agegroup.timeslot_fields.all():
        by_dow.setdefault(timeslot.dow, []).append(timeslot)

    preview = []
    for dow, timeslots in by_dow.items():
        total_slots = sum(t.max_games for t in timeslots)
        preview.append({
            "dow": dow,
            "field_count": len({t.field_id for t in timeslots}),
            "total_game_slots": total_slots,
            "games_needed": games_needed,
            "is_sufficient": total_slots >= games_needed,
        })
    return preview


# Dates

@transaction.atomic
def add_date(agegroup_id, gdate, rnd, division_id=None):
    agegroup = get_object_or_404(Agegroup, pk=agegroup_id)
    date_row = TimeslotDate.objects.create(
        agegroup=agegroup, division_id=division_id, gdate=gdate, rnd=rnd
    )
    return serialize_date(date_row)


@transaction.atomic
def edit_date(date_id, gdate, rnd):
    date_row = get_object_or_404(TimeslotDate, pk=date_id)
    date_row.gdate = gdate
    date_row.rnd = rnd
    date_row.save()
    return serialize_date(date_row)


@transaction.atomic
def delete_date(date_id):
    get_object_or_404(TimeslotDate, pk=date_id).delete()


@transaction.atomic
def delete_all_dates(agegroup_id):
    deleted, _ = TimeslotDate.objects.filter(agegroup_id=agegroup_id).delete()
    return deleted


@transaction.atomic
def clone_date(date_id, mode):
    """Copy a date to the next day, the next week or the same day, always as the next round."""
    source = get_object_or_404(TimeslotDate, pk=date_id)
    mode = (mode or "").lower()
    if mode not in DATE_CLONE_OFFSETS:
        raise ValueError(f"Invalid clone type: {mode}")

    clone = TimeslotDate.objects.create(
        agegroup_id=source.agegroup_id,
        division_id=source.division_id,
        gdate=source.gdate + timedelta(days=DATE_CLONE_OFFSETS[mode]),
        rnd=source.rnd + 1,
    )
    return serialize_date(clone)


def map_divisions_by_name(source_agegroup_id, target_agegroup_id):
    """Map source division ids to the target agegroup's division of the same name."""
    target_ids = dict(
        Division.objects.filter(agegroup_id=target_agegroup_id).values_list("name", "id")
    )
    return {
        division_id: target_ids[name]
        for division_id, name in Division.objects.filter(agegroup_id=source_agegroup_id).values_list("id", "name")
        if name in target_ids
    }


@transaction.atomic
def clone_dates(source_agegroup_id, target_agegroup_id):
    """Replace the target agegroup's dates with a copy of the source agegroup's."""
    if source_agegroup_id == target_agegroup_id:
        raise ValueError("Source and target agegroups must be different.")
    get_object_or_404(Agegroup, pk=target_agegroup_id)
    division_map = map_divisions_by_name(source_agegroup_id, target_agegroup_id)
    TimeslotDate.objects.filter(agegroup_id=target_agegroup_id).delete()
    sources = list(TimeslotDate.objects.filter(agegroup_id=source_agegroup_id))
    TimeslotDate.objects.bulk_create([
        TimeslotDate(
            agegroup_id=target_agegroup_id,
            division_id=division_map.get(d.division_id),
            gdate=d.gdate,
            rnd=d.rnd,
        )
        for d in sources
    ])
    logger.info(f"Cloned {len(sources)} dates from agegroup {source_agegroup_id} to {target_agegroup_id}")
    return len(sources)


# Field timeslots

@transaction.atomic
def add_field_timeslot(
    agegroup_id, dow, start_time, interval_minutes, max_games, field_id=None, division_id=None
):
    """
    Add a weekly slot. Without a field it is added for every field assigned to
    the job, and without a division for every active division: one row per
    field and division.
    """
    agegroup = get_object_or_404(Agegroup.objects.select_related("job"), pk=agegroup_id)
    dow = normalize_dow(dow)
    validate_slot_settings(interval_minutes, max_games)

    if field_id is not None:
        field_ids = [get_object_or_404(Field, pk=field_id).id]
    else:
        field_ids = list(agegroup.job.fields.values_list("id", flat=True))
    if division_id is not None:
        division_ids = [get_object_or_404(Division, pk=division_id, agegroup=agegroup).id]
    else:
        division_ids = list(agegroup.divisions.filter(is_active=True).values_list("id", flat=True))

    TimeslotField.objects.bulk_create([
        TimeslotField(
            agegroup=agegroup,
            field_id=f_id,
            division_id=d_id,
            dow=dow,
            start_time=start_time,
            interval_minutes=interval_minutes,
            max_games=max_games,
        )
        for f_id in field_ids
        for d_id in division_ids
    ])
    logger.info(
        f"Added {len(field_ids) * len(division_ids)} field timeslots for agegroup {agegroup_id}"
    )
    return [serialize_field_timeslot(t) for t in agegroup.timeslot_fields.select_related("field")]


@transaction.atomic
def edit_field_timeslot(
    timeslot_id, dow, start_time, interval_minutes, max_games, field_id=None, division_id=None
):
    timeslot = get_object_or_404(TimeslotField, pk=timeslot_id)
    validate_slot_settings(interval_minutes, max_games)
    timeslot.dow = normalize_dow(dow)
    timeslot.start_time = start_time
    timeslot.interval_minutes = interval_minutes
    timeslot.max_games = max_games
    if field_id is not None:
        timeslot.field_id = field_id
    if division_id is not None:
        timeslot.division_id = division_id
    timeslot.save()
    return serialize_field_timeslot(timeslot)


@transaction.atomic
def delete_field_timeslot(timeslot_id):
    get_object_or_404(TimeslotField, pk=timeslot_id).delete()


@transaction.atomic
def delete_all_field_timeslots(agegroup_id):
    deleted, _ = TimeslotField.objects.filter(agegroup_id=agegroup_id).delete()
    return deleted


def _copy_field_timeslots(sources, division_map=None, **overrides):
    clones = []
    for source in sources:
        values = {
            "agegroup_id": source.agegroup_id,
            "division_id": (
                division_map.get(source.division_id) if division_map is not None else source.division_id
            ),
            "field_id": source.field_id,
            "dow": source.dow,
            "start_time": source.start_time,
            "interval_minutes": source.interval_minutes,
            "max_games": source.max_games,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        clones.append(TimeslotField(**values))
    TimeslotField.objects.bulk_create(clones)
    return len(clones)


@transaction.atomic
def clone_field_timeslots(source_agegroup_id, target_agegroup_id):
    """Replace the target agegroup's field timeslots with a copy of the source agegroup's."""
    if source_agegroup_id == target_agegroup_id:
        raise ValueError("Source and target agegroups must be different.")
    get_object_or_404(Agegroup, pk=target_agegroup_id)
    division_map = map_divisions_by_name(source_agegroup_id, target_agegroup_id)
    TimeslotField.objects.filter(agegroup_id=target_agegroup_id).delete()
    sources = list(TimeslotField.objects.filter(agegroup_id=source_agegroup_id))
    count = _copy_field_timeslots(sources, division_map, agegroup_id=target_agegroup_id)
    logger.info(f"Cloned {count} field timeslots from agegroup {source_agegroup_id} to {target_agegroup_id}")
    return count


@transaction.atomic
def clone_by_field(agegroup_id, source_field_id, target_field_id):
    sources = TimeslotField.objects.filter(agegroup_id=agegroup_id, field_id=source_field_id)
    return _copy_field_timeslots(sources, field_id=target_field_id)


@transaction.atomic
def clone_by_division(agegroup_id, source_division_id, target_division_id):
    sources = TimeslotField.objects.filter(agegroup_id=agegroup_id, division_id=source_division_id)
    return _copy_field_timeslots(sources, division_id=target_division_id)


@transaction.atomic
def clone_by_dow(agegroup_id, source_dow, target_dow, new_start_time=None):
    sources = TimeslotField.objects.filter(agegroup_id=agegroup_id, dow__iexact=source_dow)
    return _copy_field_timeslots(sources, dow=normalize_dow(target_dow), start_time=new_start_time)


@transaction.atomic
def clone_field_timeslot_to_next_dow(timeslot_id):
    source = get_object_or_404(TimeslotField, pk=timeslot_id)
    clone = TimeslotField.objects.create(
        agegroup_id=source.agegroup_id,
        division_id=source.division_id,
        field_id=source.field_id,
        dow=next_dow(source.dow),
        start_time=source.start_time,
        interval_minutes=source.interval_minutes,
        max_games=source.max_games,
    )
    return serialize_field_timeslot(clone)
