from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from league.models import (
    Customer,
    Job,
    Agegroup,
    Division,
    Club,
    Field,
    Team,
    Registration,
    DiscountCode,
    Pairing,
    TimeslotDate,
    TimeslotField,
    Game,
)


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("name", "customer", "year", "add_processing_fees", "is_deleted", "updated_at")
    list_filter = ("customer", "year", "is_deleted")
    search_fields = ("name", "customer__name")
    filter_horizontal = ("fields",)
    actions = ["restore_deleted_jobs", "soft_delete_jobs"]

    # Use all_objects to show both deleted and non-deleted jobs
    def get_queryset(self, request):
        return Job.all_objects.get_queryset()

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Restore selected deleted jobs")
    def restore_deleted_jobs(self, request, queryset):
        """Restore soft-deleted jobs by removing the DELETED_ prefix"""
        restored_count = 0
        for job in queryset.filter(is_deleted=True):
            if job.name.startswith("DELETED_"):
                job.name = job.name[len("DELETED_"):]
            job.is_deleted = False
            job.save()
            restored_count += 1

        if restored_count > 0:
            self.message_user(request, f"Successfully restored {restored_count} job(s).")
        else:
            self.message_user(request, "No deleted jobs were selected.", level="warning")

    @admin.action(description="Soft delete selected jobs")
    def soft_delete_jobs(self, request, queryset):
        """Soft delete jobs by adding the DELETED_ prefix and setting is_deleted=True"""
        deleted_count = 0
        for job in queryset.filter(is_deleted=False):
            job.name = f"DELETED_{job.name}"
            job.is_deleted = True
            job.save()
            deleted_count += 1

        if deleted_count > 0:
            self.message_user(request, f"Successfully soft-deleted {deleted_count} job(s).")
        else:
            self.message_user(request, "No active jobs were selected.", level="warning")


class SpecialAgegroupFilter(admin.SimpleListFilter):
    """Separates regular agegroups from the waitlist and dropped-teams holding groups."""

    title = _("agegroup kind")
    parameter_name = "agegroup_kind"

    def lookups(self, request, model_admin):
        return [("regular", _("Regular")), ("waitlist", _("Waitlist")), ("dropped", _("Dropped"))]

    def queryset(self, request, queryset):
        if self.value() == "waitlist":
            return queryset.filter(name__icontains="WAITLIST")
        if self.value() == "dropped":
            return queryset.filter(name__icontains="DROPPED")
        if self.value() == "regular":
            return queryset.exclude(name__icontains="WAITLIST").exclude(name__icontains="DROPPED")
        return queryset


@admin.register(Agegroup)
class AgegroupAdmin(admin.ModelAdmin):
    list_display = ("name", "job", "roster_fee", "team_fee", "sort_order")
    list_filter = ("job", SpecialAgegroupFilter)
    search_fields = ("name", "job__name")
    list_editable = ("sort_order",)


@admin.register(Division)
class DivisionAdmin(admin.ModelAdmin):
    list_display = ("name", "agegroup", "is_active")
    list_filter = ("agegroup__job", "is_active")
    search_fields = ("name", "agegroup__name")


@admin.register(Club)
class ClubAdmin(admin.ModelAdmin):
    list_display = ("name", "state", "created_at")
    list_filter = ("state",)
    search_fields = ("name",)


@admin.register(Field)
class FieldAdmin(admin.ModelAdmin):
    list_display = ("name", "address")
    search_fields = ("name", "address")


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ("name", "club", "agegroup", "division", "div_rank", "is_active", "fee_total", "owed_total")
    list_filter = ("job", "agegroup", "is_active")
    search_fields = ("name", "club__name")
    list_select_related = ("club", "agegroup", "division")


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ("person_name", "role", "job", "team", "fee_total", "owed_total", "discount_code", "is_active")
    list_filter = ("job", "role", "is_active")
    search_fields = ("person_name", "email", "team__name")


@admin.register(DiscountCode)
class DiscountCodeAdmin(admin.ModelAdmin):
    list_display = ("code_name", "job", "discount_type", "amount", "start_date", "end_date", "is_active")
    list_filter = ("job", "is_active", "is_percentage")
    search_fields = ("code_name",)


@admin.register(Pairing)
class PairingAdmin(admin.ModelAdmin):
    list_display = ("job", "team_count", "rnd", "game_number", "t1", "t2", "t1_type", "t2_type")
    list_filter = ("job", "team_count", "t1_type")
    ordering = ("job", "team_count", "rnd", "game_number")


@admin.register(TimeslotDate)
class TimeslotDateAdmin(admin.ModelAdmin):
    list_display = ("gdate", "rnd", "agegroup", "division")
    list_filter = ("agegroup__job", "agegroup")


@admin.register(TimeslotField)
class TimeslotFieldAdmin(admin.ModelAdmin):
    list_display = ("field", "dow", "start_time", "interval_minutes", "max_games", "agegroup", "division")
    list_filter = ("agegroup__job", "agegroup", "dow")


@admin.register(Game)
class GameAdmin(admin.ModelAdmin):
    list_display = ("__str__", "division", "field", "gdate", "rnd", "game_number")
    list_filter = ("job", "agegroup", "field")
    search_fields = ("t1_name", "t2_name", "division__name", "agegroup__name")
    list_select_related = ("division", "field")
