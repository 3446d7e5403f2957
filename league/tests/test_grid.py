from datetime import date, datetime, time

from django.test import TestCase

from league.models import Game, TimeslotDate, TimeslotField
from league.services.game_operations import place_game
from league.services.grid import (
    build_timeslots,
    find_next_available_timeslot,
    get_effective_dates,
    get_effective_fields,
    get_schedule_grid,
)
from league.services.pairings import add_pairing_block
from league.tests.fixtures import create_division, create_field, create_job

SATURDAY = date(2025, 4, 5)


def at(hour, minute=0, day=SATURDAY):
    return datetime.combine(day, time(hour, minute))


class GridTestCase(TestCase):
    """A four team division with two fields offering three Saturday slots each."""

    def setUp(self):
        self.job = create_job()
        self.division = create_division(self.job, team_count=4)
        self.agegroup = self.division.agegroup
        self.north = create_field("North 1", self.job)
        self.south = create_field("South 1", self.job)
        TimeslotDate.objects.create(agegroup=self.agegroup, gdate=SATURDAY, rnd=1)
        for field in (self.north, self.south):
            TimeslotField.objects.create(
                agegroup=self.agegroup,
                field=field,
                dow="Saturday",
                start_time=time(9, 0),
                interval_minutes=60,
                max_games=3,
            )
        self.pairings = add_pairing_block(self.job.id, 4, 3)

    def place(self, index, field, gdate):
        return place_game(self.division.id, self.pairings[index]["ai"], field.id, gdate)


class EffectiveConfigurationTests(GridTestCase):
    def test_agegroup_rows_apply_to_every_division(self):
        self.assertEqual([d.gdate for d in get_effective_dates(self.division)], [SATURDAY])
        self.assertEqual(len(get_effective_fields(self.division)), 2)

    def test_division_rows_win(self):
        TimeslotDate.objects.create(agegroup=self.agegroup, division=self.division, gdate=date(2025, 4, 12))
        TimeslotField.objects.create(
            agegroup=self.agegroup,
            division=self.division,
            field=self.south,
            dow="Saturday",
            start_time=time(13, 0),
        )
        self.assertEqual([d.gdate for d in get_effective_dates(self.division)], [date(2025, 4, 12)])
        self.assertEqual([f.field_id for f in get_effective_fields(self.division)], [self.south.id])


class TimeslotSearchTests(GridTestCase):
    def test_build_timeslots(self):
        slots = build_timeslots(get_effective_dates(self.division), get_effective_fields(self.division))
        self.assertEqual(slots, [at(9), at(10), at(11)])

    def test_weekday_must_match(self):
        TimeslotField.objects.filter(field=self.south).update(dow="Sunday", start_time=time(13, 0))
        slots = build_timeslots(get_effective_dates(self.division), get_effective_fields(self.division))
        self.assertEqual(slots, [at(9), at(10), at(11)])

    def test_next_available_walks_fields_by_id_then_time(self):
        dates = get_effective_dates(self.division)
        fields = get_effective_fields(self.division)
        self.assertEqual(find_next_available_timeslot(dates, fields, set()), (self.north.id, at(9)))
        occupied = {(self.north.id, at(9)), (self.north.id, at(10)), (self.north.id, at(11))}
        self.assertEqual(find_next_available_timeslot(dates, fields, occupied), (self.south.id, at(9)))

    def test_no_slot_left(self):
        dates = get_effective_dates(self.division)
        fields = get_effective_fields(self.division)
        occupied = {(f.id, at(h)) for f in (self.north, self.south) for h in (9, 10, 11)}
        self.assertIsNone(find_next_available_timeslot(dates, fields, occupied))


class ScheduleGridTests(GridTestCase):
    def test_grid_layout(self):
        game = self.place(0, self.south, at(10))
        grid = get_schedule_grid(self.division.id)
        self.assertEqual([c["field_name"] for c in grid["columns"]], ["North 1", "South 1"])
        self.assertEqual([r["gdate"] for r in grid["rows"]], [at(9), at(10), at(11)])
        cell = grid["rows"][1]["cells"][1]
        self.assertEqual(cell["gid"], game.id)
        self.assertEqual(cell["t1_name"], "Gold 1")
        self.assertFalse(cell["is_slot_collision"])
        self.assertIsNone(grid["rows"][0]["cells"][0])
        self.assertEqual(grid["breaking_count"], 0)

    def test_conflicts(self):
        # Pairings 1 and 5 both involve team 1; pairing 2 has team 2 right after pairing 5
        first = self.place(0, self.north, at(9))
        fifth = self.place(4, self.south, at(9))
        second = self.place(1, self.north, at(10))

        grid = get_schedule_grid(self.division.id)
        self.assertEqual(grid["time_clash_ids"], sorted([first.id, fifth.id]))
        self.assertEqual(grid["back_to_back_ids"], sorted([fifth.id, second.id]))
        self.assertEqual(grid["breaking_count"], 2)

    def test_slot_collision_with_another_division(self):
        self.place(0, self.north, at(9))
        silver = create_division(self.job, division_name="Silver", team_count=2)
        Game.objects.create(
            job=self.job,
            agegroup=self.agegroup,
            division=silver,
            field=self.north,
            gdate=at(9),
            t1_no=1,
            t2_no=2,
        )
        grid = get_schedule_grid(self.division.id)
        cell = grid["rows"][0]["cells"][0]
        self.assertTrue(cell["is_slot_collision"])
        self.assertEqual(cell["division_id"], silver.id)
        self.assertEqual(grid["breaking_count"], 1)

    def test_empty_without_dates(self):
        TimeslotDate.objects.all().delete()
        grid = get_schedule_grid(self.division.id)
        self.assertEqual(grid["rows"], [])
        self.assertEqual(len(grid["columns"]), 2)
