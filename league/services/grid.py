"""
Schedule grid service functions.

Builds the timeslot x field grid for a division and finds free slots for
placing games. Dates and field timeslots may be defined per division or
once for the whole agegroup (division left empty); division rows win.
"""

from datetime import datetime, timedelta

from django.shortcuts import get_object_or_404

from league.models import Division, Game, TimeslotDate, TimeslotField, WEEKDAY_NAMES
from .conflicts import (
    compute_back_to_back_game_ids,
    compute_time_clash_game_ids,
    count_breaking_conflicts,
)


def weekday_name(day):
    return WEEKDAY_NAMES[day.weekday()]


def get_effective_dates(division):
    dates = TimeslotDate.objects.filter(agegroup_id=division.agegroup_id)
    division_dates = list(dates.filter(division=division).order_by("gdate", "rnd"))
    if division_dates:
        return division_dates
    return list(dates.filter(division__isnull=True).order_by("gdate", "rnd"))


def get_effective_fields(division):
    timeslots = TimeslotField.objects.filter(agegroup_id=division.agegroup_id).select_related("field")
    division_fields = list(timeslots.filter(division=division))
    if division_fields:
        return division_fields
    return list(timeslots.filter(division__isnull=True))


def field_slot_times(day, field_timeslot):
    """Every game start time a field timeslot offers on a given day."""
    start = datetime.combine(day, field_timeslot.start_time)
    return [
        start + timedelta(minutes=g * field_timeslot.interval_minutes)
        for g in range(field_timeslot.max_games)
    ]


def fields_for_day(fields, day):
    dow = weekday_name(day).lower()
    return [f for f in fields if f.dow.lower() == dow]


def build_timeslots(dates, fields):
    slots = set()
    for day in sorted({d.gdate for d in dates}):
        for field_timeslot in fields_for_day(fields, day):
            slots.update(field_slot_times(day, field_timeslot))
    return sorted(slots)


def find_next_available_timeslot(dates, fields, occupied):
    """
    First free (field_id, start) walking dates in order, then that weekday's
    fields by id, then each field's game intervals. Returns None when full.
    """
    for date_row in sorted(dates, key=lambda d: d.gdate):
        day_fields = sorted(fields_for_day(fields, date_row.gdate), key=lambda f: f.field_id)
        for field_timeslot in day_fields:
            for slot in field_slot_times(date_row.gdate, field_timeslot):
                if (field_timeslot.field_id, slot) not in occupied:
                    return field_timeslot.field_id, slot
    return None


def get_occupied_slots(job, field_ids, exclude_division=None):
    games = Game.objects.filter(job=job, field_id__in=field_ids, gdate__isnull=False)
    if exclude_division is not None:
        games = games.exclude(division=exclude_division)
    return {(field_id, gdate) for field_id, gdate in games.values_list("field_id", "gdate")}


def get_schedule_grid(division_id):
    division = get_object_or_404(Division.objects.select_related("agegroup__job"), pk=division_id)
    dates = get_effective_dates(division)
    fields = get_effective_fields(division)

    columns = sorted(
        {f.field_id: {"field_id": f.field_id, "field_name": f.field.name} for f in fields}.values(),
        key=lambda c: c["field_name"],
    )
    field_ids = [c["field_id"] for c in columns]
    if not dates or not field_ids:
        return {"columns": columns, "rows": [], "time_clash_ids": [], "back_to_back_ids": [], "breaking_count": 0}

    timeslots = build_timeslots(dates, fields)

    # Fields can be shared between agegroups, so index every game in the job on these fields
    games = (
        Game.objects.filter(job=division.agegroup.job, field_id__in=field_ids, gdate__in=timeslots)
        .select_related("field")
        .order_by("id")
    )
    game_index = {}
    collisions = set()
    for game in games:
        key = (game.gdate, game.field_id)
        if key in game_index:
            collisions.add(key)
        game_index[key] = game

    rows = []
    for slot in timeslots:
        cells = []
        for field_id in field_ids:
            game = game_index.get((slot, field_id))
            if game is None:
                cells.append(None)
                continue
            cell = game.to_dict()
            cell["agegroup_id"] = game.agegroup_id
            cell["division_id"] = game.division_id
            cell["is_slot_collision"] = (slot, field_id) in collisions
            cells.append(cell)
        rows.append({"gdate": slot, "cells": cells})

    time_clash_ids = compute_time_clash_game_ids(rows)
    back_to_back_ids = compute_back_to_back_game_ids(rows)
    return {
        "columns": columns,
        "rows": rows,
        "time_clash_ids": sorted(time_clash_ids),
        "back_to_back_ids": sorted(back_to_back_ids),
        "breaking_count": count_breaking_conflicts(rows, time_clash_ids),
    }
