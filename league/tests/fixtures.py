"""Shared builders for league test data."""

from decimal import Decimal

from league.models import Agegroup, Customer, Division, Field, Job, Team


def create_job(name="Spring League 2025", customer_name="Metro Lacrosse", year=2025, **job_fields):
    customer, _ = Customer.objects.get_or_create(name=customer_name)
    return Job.objects.create(customer=customer, name=name, year=year, **job_fields)


def create_agegroup(job, name="2030 Boys", roster_fee="100.00", team_fee="400.00", **fields):
    agegroup, _ = Agegroup.objects.get_or_create(
        job=job,
        name=name,
        defaults={"roster_fee": Decimal(roster_fee), "team_fee": Decimal(team_fee), **fields},
    )
    return agegroup


def create_division(job, agegroup_name="2030 Boys", division_name="Gold", team_count=4):
    """A division with ``team_count`` active teams ranked 1..N."""
    agegroup = create_agegroup(job, agegroup_name)
    division = Division.objects.create(agegroup=agegroup, name=division_name)
    for rank in range(1, team_count + 1):
        Team.objects.create(
            job=job,
            agegroup=agegroup,
            division=division,
            name=f"{division_name} {rank}",
            div_rank=rank,
        )
    return division


def create_field(name, *jobs):
    field = Field.objects.create(name=name)
    for job in jobs:
        job.fields.add(field)
    return field
