from datetime import date, datetime, time

from django.http import Http404
from django.test import TestCase

from league.models import Game, TimeslotDate, TimeslotField
from league.services.game_operations import (
    adjust_for_weather,
    auto_schedule_division,
    delete_division_games,
    delete_game,
    get_affected_game_count,
    move_game,
    place_game,
)
from league.services.pairings import add_pairing_block, remove_all_pairings
from league.tests.fixtures import create_division, create_field, create_job

SATURDAY = date(2025, 4, 5)


def at(hour, minute=0, day=SATURDAY):
    return datetime.combine(day, time(hour, minute))


class GameOperationsTestCase(TestCase):
    def setUp(self):
        self.job = create_job()
        self.division = create_division(self.job, team_count=4)
        self.agegroup = self.division.agegroup
        self.north = create_field("North 1", self.job)
        self.south = create_field("South 1", self.job)
        self.pairings = add_pairing_block(self.job.id, 4, 3)

    def add_slots(self, max_games=3, fields=None):
        for field in fields or (self.north, self.south):
            TimeslotField.objects.create(
                agegroup=self.agegroup,
                field=field,
                dow="Saturday",
                start_time=time(9, 0),
                interval_minutes=60,
                max_games=max_games,
            )

    def place(self, index, field, gdate):
        return place_game(self.division.id, self.pairings[index]["ai"], field.id, gdate)


class PlaceAndMoveTests(GameOperationsTestCase):
    def test_place_resolves_teams_from_ranks(self):
        game = self.place(0, self.north, at(9))
        self.assertEqual((game.t1_no, game.t2_no), (1, 4))
        self.assertEqual((game.t1_name, game.t2_name), ("Gold 1", "Gold 4"))
        self.assertEqual(game.job, self.job)
        self.assertEqual(game.weekday, "Saturday")

    def test_pairing_from_another_job(self):
        other_job = create_job(name="Other 2025")
        other = add_pairing_block(other_job.id, 4, 1)[0]
        with self.assertRaises(Http404):
            place_game(self.division.id, other["ai"], self.north.id, at(9))

    def test_move_to_empty_slot(self):
        game = self.place(0, self.north, at(9))
        result = move_game(game.id, self.south.id, at(11))
        self.assertIsNone(result["swapped_with"])
        game.refresh_from_db()
        self.assertEqual((game.field, game.gdate), (self.south, at(11)))

    def test_move_onto_occupied_slot_swaps(self):
        first = self.place(0, self.north, at(9))
        second = self.place(1, self.south, at(10))
        result = move_game(first.id, self.south.id, at(10))
        self.assertEqual(result["swapped_with"], second.id)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual((first.field, first.gdate), (self.south, at(10)))
        self.assertEqual((second.field, second.gdate), (self.north, at(9)))

    def test_delete(self):
        game = self.place(0, self.north, at(9))
        self.place(1, self.north, at(10))
        delete_game(game.id)
        self.assertFalse(Game.objects.filter(pk=game.id).exists())
        self.assertEqual(delete_division_games(self.division.id), 1)


class AutoScheduleTests(GameOperationsTestCase):
    def test_single_date_fills_slots_in_order(self):
        TimeslotDate.objects.create(agegroup=self.agegroup, gdate=SATURDAY, rnd=1)
        self.add_slots()
        result = auto_schedule_division(self.division.id)
        self.assertEqual(result, {"total_pairings": 6, "scheduled_count": 6, "failed_count": 0})

        placed = list(Game.objects.filter(division=self.division).order_by("game_number"))
        self.assertEqual(
            [(g.field_id, g.gdate) for g in placed[:4]],
            [
                (self.north.id, at(9)),
                (self.north.id, at(10)),
                (self.north.id, at(11)),
                (self.south.id, at(9)),
            ],
        )
        self.assertEqual(placed[0].t1_name, "Gold 1")

    def test_rounds_follow_their_dates(self):
        for rnd, day in enumerate((date(2025, 4, 5), date(2025, 4, 12), date(2025, 4, 19)), start=1):
            TimeslotDate.objects.create(agegroup=self.agegroup, gdate=day, rnd=rnd)
        self.add_slots()
        auto_schedule_division(self.division.id)
        days_by_round = {
            (g.rnd, g.gdate.date()) for g in Game.objects.filter(division=self.division)
        }
        self.assertEqual(
            days_by_round,
            {(1, date(2025, 4, 5)), (2, date(2025, 4, 12)), (3, date(2025, 4, 19))},
        )

    def test_reports_games_that_do_not_fit(self):
        TimeslotDate.objects.create(agegroup=self.agegroup, gdate=SATURDAY, rnd=1)
        self.add_slots(max_games=2, fields=[self.north])
        result = auto_schedule_division(self.division.id)
        self.assertEqual(result["scheduled_count"], 2)
        self.assertEqual(result["failed_count"], 4)

    def test_slots_used_by_other_divisions_are_skipped(self):
        TimeslotDate.objects.create(agegroup=self.agegroup, gdate=SATURDAY, rnd=1)
        self.add_slots()
        silver = create_division(self.job, division_name="Silver", team_count=2)
        Game.objects.create(
            job=self.job, agegroup=self.agegroup, division=silver, field=self.north, gdate=at(9)
        )
        auto_schedule_division(self.division.id)
        first = Game.objects.filter(division=self.division).order_by("game_number").first()
        self.assertEqual((first.field_id, first.gdate), (self.north.id, at(10)))

    def test_rerun_replaces_previous_games(self):
        TimeslotDate.objects.create(agegroup=self.agegroup, gdate=SATURDAY, rnd=1)
        self.add_slots()
        auto_schedule_division(self.division.id)
        auto_schedule_division(self.division.id)
        self.assertEqual(Game.objects.filter(division=self.division).count(), 6)

    def test_nothing_to_schedule_without_pairings(self):
        TimeslotDate.objects.create(agegroup=self.agegroup, gdate=SATURDAY, rnd=1)
        self.add_slots()
        remove_all_pairings(self.job.id, 4)
        result = auto_schedule_division(self.division.id)
        self.assertEqual(result, {"total_pairings": 0, "scheduled_count": 0, "failed_count": 0})


class WeatherAdjustmentTests(GameOperationsTestCase):
    def setUp(self):
        super().setUp()
        self.games = [
            self.place(0, self.north, at(9)),
            self.place(1, self.north, at(10)),
            self.place(2, self.north, at(11)),
        ]
        self.field_ids = [self.north.id]

    def adjust(self, pre_first=None, pre_interval=60, post_first=None, post_interval=90):
        return adjust_for_weather(
            self.job.id,
            pre_first or at(9),
            pre_interval,
            post_first or at(10),
            post_interval,
            self.field_ids,
        )

    def test_affected_count(self):
        self.assertEqual(get_affected_game_count(self.job.id, at(10), self.field_ids), 2)
        self.assertEqual(get_affected_game_count(self.job.id, at(9), [self.south.id]), 0)

    def test_shift_and_stretch(self):
        result = self.adjust()
        self.assertTrue(result["success"])
        self.assertEqual(result["result_code"], 1)
        self.assertEqual(result["games_moved"], 3)
        times = [Game.objects.get(pk=g.pk).gdate for g in self.games]
        self.assertEqual(times, [at(10), at(11, 30), at(13)])

    def test_invalid_after_interval(self):
        self.assertEqual(self.adjust(post_interval=0)["result_code"], 4)

    def test_no_change(self):
        self.assertEqual(self.adjust(post_first=at(9), post_interval=60)["result_code"], 7)

    def test_interval_mismatch(self):
        self.assertEqual(self.adjust(pre_first=at(8))["result_code"], 3)

    def test_no_games(self):
        result = self.adjust(pre_first=at(9, day=date(2025, 4, 6)), post_first=at(10, day=date(2025, 4, 6)))
        self.assertEqual(result["result_code"], 6)
        self.assertFalse(result["success"])

    def test_different_year(self):
        self.assertEqual(self.adjust(post_first=datetime(2026, 4, 4, 10, 0))["result_code"], 5)

    def test_off_interval_game(self):
        self.place(3, self.north, at(9, 30))
        self.assertEqual(self.adjust()["result_code"], 8)

    def test_overlap_with_unmoved_game(self):
        self.place(3, self.north, at(8))
        result = self.adjust(post_first=at(8), post_interval=60)
        self.assertEqual(result["result_code"], 2)
        self.assertEqual(Game.objects.get(pk=self.games[0].pk).gdate, at(9))
