from datetime import date, datetime, time

from django.test import TestCase

from league.models import Club, Game, Team
from league.services.game_operations import place_game
from league.services.pairings import add_pairing_block
from league.services.validation import run_qa_validation
from league.tests.fixtures import create_division, create_field, create_job

SATURDAY = date(2025, 4, 5)


def at(hour, minute=0):
    return datetime.combine(SATURDAY, time(hour, minute))


class QAValidationTests(TestCase):
    def setUp(self):
        self.job = create_job()
        self.division = create_division(self.job, team_count=4)
        self.north = create_field("North 1", self.job)
        self.south = create_field("South 1", self.job)
        self.pairings = add_pairing_block(self.job.id, 4, 3)
        # Round 1: (1, 4) and (2, 3)
        self.place(0, self.north, at(9))
        self.place(1, self.south, at(9))

    def place(self, index, field, gdate):
        return place_game(self.division.id, self.pairings[index]["ai"], field.id, gdate)

    def test_clean_schedule_passes(self):
        results = run_qa_validation(self.job.id)
        self.assertEqual(results["total_games"], 2)
        self.assertTrue(all(check["passed"] for check in results["checks"].values()))
        self.assertEqual(results["games_per_date"], {"04/05/2025": 2})
        self.assertEqual(
            results["rr_games_per_division"],
            [{"agegroup_name": "2030 Boys", "division_name": "Gold", "pool_size": 4, "game_count": 2}],
        )
        self.assertEqual(
            results["games_per_field_per_day"],
            [
                {"field_name": "North 1", "game_day": "04/05/2025", "game_count": 1},
                {"field_name": "South 1", "game_day": "04/05/2025", "game_count": 1},
            ],
        )
        self.assertEqual(results["bracket_games"], [])

    def test_unscheduled_teams(self):
        Game.objects.filter(field=self.south).delete()
        results = run_qa_validation(self.job.id)
        self.assertEqual([t["team_name"] for t in results["unscheduled_teams"]], ["Gold 2", "Gold 3"])
        self.assertFalse(results["checks"]["unscheduled_teams"]["passed"])
        self.assertEqual(results["checks"]["unscheduled_teams"]["count"], 2)

    def test_field_double_booking(self):
        self.place(2, self.north, at(9))
        results = run_qa_validation(self.job.id)
        self.assertEqual(
            results["field_double_bookings"], [{"label": "North 1", "gdate": at(9), "count": 2}]
        )

    def test_team_double_booking(self):
        # The fifth pairing is (1, 2): both teams already play at 9:00
        self.place(4, create_field("East 1", self.job), at(9))
        results = run_qa_validation(self.job.id)
        labels = sorted(b["label"] for b in results["team_double_bookings"])
        self.assertEqual(labels, ["Gold 1", "Gold 2"])

    def test_rank_mismatch(self):
        Team.objects.filter(job=self.job, name="Gold 4").update(div_rank=5)
        results = run_qa_validation(self.job.id)
        mismatch = results["rank_mismatches"][0]
        self.assertEqual((mismatch["team_name"], mismatch["schedule_no"], mismatch["actual_div_rank"]),
                         ("Gold 4", 4, 5))

    def test_back_to_back(self):
        # The third pairing is (1, 3): team 1 and team 3 both played at 9:00
        self.place(2, self.north, at(10))
        results = run_qa_validation(self.job.id)
        self.assertEqual(
            sorted(b["team_name"] for b in results["back_to_back"]), ["Gold 1", "Gold 3"]
        )
        self.assertEqual(results["back_to_back"][0]["minutes_since_previous"], 60)

        spreads = {s["team_name"]: s["spread_minutes"] for s in results["game_spreads"]}
        self.assertEqual(spreads, {"Gold 1": 60, "Gold 3": 60})

    def test_back_to_back_window_is_configurable(self):
        self.place(2, self.north, at(10))
        with self.settings(LEAGUE_BACK_TO_BACK_MINUTES=30):
            results = run_qa_validation(self.job.id)
        self.assertEqual(results["back_to_back"], [])

    def test_repeated_matchup(self):
        self.place(0, self.north, at(12))
        results = run_qa_validation(self.job.id)
        self.assertEqual(
            results["repeated_matchups"],
            [{
                "agegroup_name": "2030 Boys",
                "division_name": "Gold",
                "team1_name": "Gold 1",
                "team2_name": "Gold 4",
                "times_played": 2,
            }],
        )

    def test_inactive_team_in_games(self):
        Team.objects.filter(job=self.job, name="Gold 4").update(is_active=False)
        results = run_qa_validation(self.job.id)
        self.assertEqual(results["inactive_teams_in_games"][0]["team_name"], "Gold 4")
        self.assertEqual(results["inactive_teams_in_games"][0]["game_count"], 1)

    def test_games_per_team_per_day_includes_club(self):
        club = Club.objects.create(name="Metro Hawks")
        Team.objects.filter(job=self.job, name="Gold 1").update(club=club)
        results = run_qa_validation(self.job.id)
        row = next(r for r in results["games_per_team_per_day"] if r["team_name"] == "Gold 1")
        self.assertEqual((row["club_name"], row["game_day"], row["game_count"]), ("Metro Hawks", "04/05/2025", 1))
        self.assertEqual(len(results["games_per_team"]), 4)

    def test_bracket_games_are_listed_separately(self):
        Game.objects.create(
            job=self.job,
            agegroup=self.division.agegroup,
            division=self.division,
            field=self.north,
            gdate=at(15),
            t1_type="F",
            t2_type="F",
            t1_name="Winner S1",
            t2_name="Winner S2",
        )
        results = run_qa_validation(self.job.id)
        self.assertEqual(len(results["bracket_games"]), 1)
        self.assertEqual(results["bracket_games"][0]["t1_type"], "F")
        self.assertEqual(results["rr_games_per_division"][0]["game_count"], 2)
