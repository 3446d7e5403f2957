from django.test import TestCase
from django.db.utils import IntegrityError
from league.models import Agegroup, Customer, DiscountCode, Division, Game, Job, Pairing, Team
from league.tests.fixtures import create_division, create_field, create_job
from datetime import datetime, timedelta


class ModelTests(TestCase):
    def setUp(self):
        self.job = create_job()
        self.division = create_division(self.job, team_count=3)
        self.agegroup = self.division.agegroup
        self.field = create_field("North 1", self.job)

    def test_soft_deleted_jobs_are_hidden(self):
        """Soft-deleted jobs drop out of the default manager but stay in all_objects."""
        Job.all_objects.filter(pk=self.job.pk).update(is_deleted=True)
        self.assertFalse(Job.objects.filter(pk=self.job.pk).exists())
        self.assertTrue(Job.all_objects.filter(pk=self.job.pk).exists())

    def test_job_name_unique_per_customer(self):
        """Job names are unique within a customer."""
        # Different customer is fine
        create_job(customer_name="Elsewhere")

        with self.assertRaises(IntegrityError):
            Job.objects.create(customer=Customer.objects.get(name="Metro Lacrosse"), name="Spring League 2025")

    def test_agegroup_name_unique_per_job(self):
        with self.assertRaises(IntegrityError):
            Agegroup.objects.create(job=self.job, name="2030 Boys")

    def test_active_teams_ordered_by_rank(self):
        Team.objects.filter(division=self.division, div_rank=2).update(is_active=False)
        Team.objects.filter(division=self.division, div_rank=3).update(div_rank=1)
        Team.objects.filter(division=self.division, name="Gold 1").update(div_rank=3)
        self.assertEqual([t.name for t in self.division.active_teams()], ["Gold 3", "Gold 1"])

    def test_discount_type(self):
        now = datetime.now()
        code = DiscountCode(job=self.job, code_name="X", is_percentage=True, start_date=now,
                            end_date=now + timedelta(days=1))
        self.assertEqual(code.discount_type, "Percentage")
        code.is_percentage = False
        self.assertEqual(code.discount_type, "DollarAmount")

    def test_pairing_is_round_robin(self):
        pairing = Pairing(job=self.job, team_count=4, game_number=1, rnd=1, t1=1, t2=4)
        self.assertTrue(pairing.is_round_robin)
        pairing.t2_type = "F"
        self.assertFalse(pairing.is_round_robin)

    def test_game_dict_and_weekday(self):
        """Test the serialized form used by the grid."""
        game = Game.objects.create(
            job=self.job,
            agegroup=self.agegroup,
            division=self.division,
            field=self.field,
            gdate=datetime(2025, 4, 5, 9, 0),
            t1_no=1,
            t2_no=2,
        )
        self.assertEqual(game.weekday, "Saturday")
        data = game.to_dict()
        self.assertEqual(data["gid"], game.id)
        self.assertEqual(data["gdate"], "2025-04-05T09:00:00")
        self.assertEqual(data["field_name"], "North 1")
        self.assertTrue(game.is_round_robin)
        self.assertEqual(str(game), "2025-04-05 09:00: 1 vs 2")

    def test_unscheduled_game(self):
        game = Game(job=self.job, agegroup=self.agegroup, division=self.division)
        self.assertIsNone(game.weekday)
        self.assertIsNone(game.to_dict()["gdate"])
        self.assertEqual(str(game), "unscheduled: 0 vs 0")

    def test_division_str(self):
        self.assertEqual(str(self.division), "2030 Boys Gold")
        self.assertEqual(Division.objects.get(pk=self.division.pk).active_teams().count(), 3)
