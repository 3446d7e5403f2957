from datetime import date, datetime, time

from django.test import TestCase

from league.models import Game, TimeslotDate, TimeslotField
from league.services.auto_build import (
    analyze_feasibility,
    build_schedule,
    confidence_level,
    decrement_years_in_name,
    extract_patterns,
    get_source_jobs,
    increment_years_in_name,
    undo_build,
)
from league.services.pairings import add_pairing_block
from league.tests.fixtures import create_division, create_field, create_job


class YearNameTests(TestCase):
    def test_increment_and_decrement(self):
        self.assertEqual(increment_years_in_name("2030 Boys"), "2031 Boys")
        self.assertEqual(decrement_years_in_name("2031/2032 Girls"), "2030/2031 Girls")
        self.assertEqual(increment_years_in_name("U12 Boys"), "U12 Boys")

    def test_confidence_level(self):
        self.assertEqual(confidence_level(81), "green")
        self.assertEqual(confidence_level(80), "yellow")
        self.assertEqual(confidence_level(50), "red")


class AutoBuildTests(TestCase):
    def setUp(self):
        self.source_job = create_job(name="Spring League 2024", year=2024)
        self.job = create_job(name="Spring League 2025", year=2025)
        self.north = create_field("North 1", self.source_job, self.job)
        self.old_park = create_field("Old Park", self.source_job)

        source_gold = create_division(self.source_job, agegroup_name="2030 Boys", division_name="Gold")
        source_bronze = create_division(
            self.source_job, agegroup_name="2030 Boys", division_name="Bronze", team_count=2
        )
        self.add_source_game(source_gold, 1, 1, 1, 4, time(9, 0))
        self.add_source_game(source_gold, 1, 2, 2, 3, time(10, 0))
        self.add_source_game(source_gold, 4, 7, 1, 2, time(11, 0), bracket="F")
        self.add_source_game(source_bronze, 1, 1, 1, 2, time(9, 0), field=self.old_park)

        self.gold = create_division(self.job, agegroup_name="2031 Boys", division_name="Gold")
        self.silver = create_division(self.job, agegroup_name="2031 Boys", division_name="Silver", team_count=2)
        agegroup = self.gold.agegroup
        TimeslotDate.objects.create(agegroup=agegroup, gdate=date(2025, 4, 5), rnd=1)
        TimeslotField.objects.create(
            agegroup=agegroup,
            field=self.north,
            dow="Saturday",
            start_time=time(9, 0),
            interval_minutes=60,
            max_games=4,
        )
        add_pairing_block(self.job.id, 4, 3)

    def add_source_game(self, division, rnd, game_number, t1, t2, start, bracket=None, field=None):
        return Game.objects.create(
            job=self.source_job,
            agegroup=division.agegroup,
            division=division,
            field=field or self.north,
            gdate=datetime.combine(date(2024, 4, 6), start),
            rnd=rnd,
            game_number=game_number,
            t1_no=t1,
            t2_no=t2,
            t1_type=bracket or "T",
            t2_type=bracket or "T",
        )

    def test_source_jobs(self):
        create_job(name="Spring League 2023", year=2023)
        other_customer = create_job(name="Other 2024", customer_name="Elsewhere", year=2024)
        Game.objects.create(
            job=other_customer,
            agegroup=self.gold.agegroup,
            division=self.gold,
            gdate=datetime(2024, 4, 6, 9, 0),
        )
        sources = get_source_jobs(self.job.id)
        self.assertEqual(
            sources,
            [{"job_id": self.source_job.id, "job_name": "Spring League 2024", "year": 2024,
              "scheduled_game_count": 4}],
        )

    def test_extract_patterns(self):
        patterns = extract_patterns(self.source_job.id)
        self.assertEqual(len(patterns), 4)
        first = patterns[0]
        self.assertEqual(first["dow"], "Saturday")
        self.assertEqual(first["day_ordinal"], 0)
        self.assertEqual(first["time_of_day"], time(9, 0))

    def test_feasibility(self):
        analysis = analyze_feasibility(self.job.id, self.source_job.id)
        self.assertEqual(analysis["source_total_games"], 4)
        match_types = {m["division_name"]: m["match_type"] for m in analysis["division_matches"]}
        self.assertEqual(
            match_types, {"Gold": "ExactMatch", "Bronze": "RemovedDivision", "Silver": "NewDivision"}
        )
        feasibility = analysis["feasibility"]
        self.assertEqual(feasibility["total_current_divisions"], 2)
        self.assertEqual(feasibility["confidence_percent"], 50)
        self.assertEqual(feasibility["confidence_level"], "red")
        self.assertEqual(feasibility["field_mismatches"], ["Old Park"])
        self.assertEqual(len(feasibility["warnings"]), 2)

    def test_size_mismatch(self):
        self.gold.active_teams().filter(div_rank=4).update(is_active=False)
        analysis = analyze_feasibility(self.job.id, self.source_job.id)
        gold = next(m for m in analysis["division_matches"] if m["division_name"] == "Gold")
        self.assertEqual(gold["match_type"], "SizeMismatch")
        self.assertEqual((gold["source_team_count"], gold["current_team_count"]), (4, 3))

    def test_build_replays_patterns(self):
        result = build_schedule(self.job.id, self.source_job.id)
        self.assertEqual(result["total_divisions"], 2)
        self.assertEqual(result["divisions_scheduled"], 2)
        self.assertEqual(result["total_games_placed"], 2)
        statuses = {r["division_name"]: r["status"] for r in result["division_results"]}
        self.assertEqual(statuses, {"Gold": "pattern-replay", "Silver": "auto-schedule"})

        games = list(Game.objects.filter(division=self.gold).order_by("gdate"))
        self.assertEqual(
            [(g.field_id, g.gdate) for g in games],
            [(self.north.id, datetime(2025, 4, 5, 9, 0)), (self.north.id, datetime(2025, 4, 5, 10, 0))],
        )
        self.assertEqual((games[0].t1_name, games[0].t2_name), ("Gold 1", "Gold 4"))

    def test_build_with_bracket_games(self):
        result = build_schedule(self.job.id, self.source_job.id, include_bracket_games=True)
        self.assertEqual(result["total_games_placed"], 3)
        final = Game.objects.get(division=self.gold, t1_type="F")
        self.assertEqual(final.gdate, datetime(2025, 4, 5, 11, 0))

    def test_skips(self):
        Game.objects.create(
            job=self.job,
            agegroup=self.silver.agegroup,
            division=self.silver,
            gdate=datetime(2025, 4, 5, 12, 0),
        )
        result = build_schedule(
            self.job.id, self.source_job.id, skip_division_ids=[self.gold.id], skip_already_scheduled=True
        )
        statuses = {r["division_name"]: r["status"] for r in result["division_results"]}
        self.assertEqual(statuses, {"Gold": "skipped", "Silver": "already-scheduled"})
        self.assertEqual(result["divisions_skipped"], 2)
        self.assertEqual(result["divisions_scheduled"], 0)

    def test_size_mismatch_resolution(self):
        self.gold.active_teams().filter(div_rank=4).update(is_active=False)
        result = build_schedule(self.job.id, self.source_job.id, resolutions={str(self.gold.id): "skip"})
        statuses = {r["division_name"]: r["status"] for r in result["division_results"]}
        self.assertEqual(statuses["Gold"], "skipped")

    def test_undo(self):
        build_schedule(self.job.id, self.source_job.id)
        self.assertEqual(undo_build(self.job.id), 2)
        self.assertEqual(Game.objects.filter(job=self.source_job).count(), 4)
