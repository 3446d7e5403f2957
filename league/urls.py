from django.urls import path
from . import views
from . import auth_views

app_name = "league"

urlpatterns = [
    # Authentication endpoints
    path("auth/login/", auth_views.login_view, name="login"),
    path("auth/logout/", auth_views.logout_view, name="logout"),
    path("auth/status/", auth_views.auth_status, name="auth_status"),
    path("auth/csrf-token/", auth_views.get_csrf_token, name="csrf_token"),

    # Clubs and team registration
    path("api/clubs/search/", views.club_search_endpoint, name="club_search_api"),
    path("api/jobs/<int:job_id>/club-reps/", views.club_rep_register_endpoint, name="club_rep_register_api"),
    path("api/jobs/<int:job_id>/teams/", views.team_register_endpoint, name="team_register_api"),
    path("api/jobs/<int:job_id>/teams/recalculate-fees/", views.recalculate_team_fees_endpoint, name="recalculate_team_fees_api"),

    # Discount codes
    path("api/jobs/<int:job_id>/discount-codes/", views.discount_codes_endpoint, name="discount_codes_api"),
    path("api/jobs/<int:job_id>/discount-codes/bulk/", views.discount_codes_bulk_endpoint, name="discount_codes_bulk_api"),
    path("api/jobs/<int:job_id>/discount-codes/status/", views.discount_codes_batch_status_endpoint, name="discount_codes_status_api"),
    path("api/discount-codes/<int:code_id>/", views.discount_code_detail_endpoint, name="discount_code_detail_api"),
    path("api/jobs/<int:job_id>/discounts/apply/", views.apply_discount_endpoint, name="apply_discount_api"),

    # Pool assignment
    path("api/jobs/<int:job_id>/pools/", views.pool_divisions_endpoint, name="pool_divisions_api"),
    path("api/jobs/<int:job_id>/pools/preview/", views.pool_preview_endpoint, name="pool_preview_api"),
    path("api/jobs/<int:job_id>/pools/transfer/", views.pool_transfer_endpoint, name="pool_transfer_api"),

    # Pairings and division teams
    path("api/jobs/<int:job_id>/pairings/block/", views.pairing_block_endpoint, name="pairing_block_api"),
    path("api/jobs/<int:job_id>/pairings/elimination/", views.pairing_elimination_endpoint, name="pairing_elimination_api"),
    path("api/jobs/<int:job_id>/pairings/single/", views.pairing_single_endpoint, name="pairing_single_api"),
    path("api/jobs/<int:job_id>/pairings/remove-all/", views.pairing_remove_all_endpoint, name="pairing_remove_all_api"),
    path("api/jobs/<int:job_id>/pairings/who-plays-who/", views.who_plays_who_endpoint, name="who_plays_who_api"),
    path("api/pairings/<int:pairing_id>/", views.pairing_detail_endpoint, name="pairing_detail_api"),
    path("api/divisions/<int:division_id>/pairings/", views.division_pairings_endpoint, name="division_pairings_api"),
    path("api/divisions/<int:division_id>/teams/", views.division_teams_endpoint, name="division_teams_api"),
    path("api/jobs/<int:job_id>/division-teams/<int:team_id>/", views.division_team_detail_endpoint, name="division_team_detail_api"),

    # Timeslots
    path("api/agegroups/<int:agegroup_id>/timeslots/", views.timeslot_configuration_endpoint, name="timeslot_configuration_api"),
    path("api/agegroups/<int:agegroup_id>/timeslots/capacity/", views.capacity_preview_endpoint, name="capacity_preview_api"),
    path("api/agegroups/<int:agegroup_id>/dates/", views.timeslot_dates_endpoint, name="timeslot_dates_api"),
    path("api/agegroups/<int:agegroup_id>/dates/clone/", views.timeslot_dates_clone_endpoint, name="timeslot_dates_clone_api"),
    path("api/dates/<int:date_id>/", views.timeslot_date_detail_endpoint, name="timeslot_date_detail_api"),
    path("api/dates/<int:date_id>/clone/", views.timeslot_date_clone_endpoint, name="timeslot_date_clone_api"),
    path("api/agegroups/<int:agegroup_id>/field-timeslots/", views.field_timeslots_endpoint, name="field_timeslots_api"),
    path("api/agegroups/<int:agegroup_id>/field-timeslots/clone/", views.field_timeslots_clone_endpoint, name="field_timeslots_clone_api"),
    path("api/field-timeslots/<int:timeslot_id>/", views.field_timeslot_detail_endpoint, name="field_timeslot_detail_api"),
    path("api/field-timeslots/<int:timeslot_id>/clone-next-day/", views.field_timeslot_next_dow_endpoint, name="field_timeslot_next_dow_api"),

    # Schedule grid and games
    path("api/divisions/<int:division_id>/grid/", views.schedule_grid_endpoint, name="schedule_grid_api"),
    path("api/divisions/<int:division_id>/games/", views.division_games_endpoint, name="division_games_api"),
    path("api/divisions/<int:division_id>/auto-schedule/", views.auto_schedule_endpoint, name="auto_schedule_api"),
    path("api/games/<int:game_id>/", views.game_detail_endpoint, name="game_detail_api"),
    path("api/games/<int:game_id>/move/", views.move_game_endpoint, name="move_game_api"),
    path("api/jobs/<int:job_id>/weather/preview/", views.weather_preview_endpoint, name="weather_preview_api"),
    path("api/jobs/<int:job_id>/weather/", views.weather_adjust_endpoint, name="weather_adjust_api"),

    # Auto-build and QA
    path("api/jobs/<int:job_id>/auto-build/sources/", views.auto_build_sources_endpoint, name="auto_build_sources_api"),
    path("api/jobs/<int:job_id>/auto-build/analyze/", views.auto_build_analyze_endpoint, name="auto_build_analyze_api"),
    path("api/jobs/<int:job_id>/auto-build/", views.auto_build_endpoint, name="auto_build_api"),
    path("api/jobs/<int:job_id>/auto-build/undo/", views.auto_build_undo_endpoint, name="auto_build_undo_api"),
    path("api/jobs/<int:job_id>/qa/", views.qa_validation_endpoint, name="qa_validation_api"),
]
