"""
League services module.

This module provides organized service functions for business logic
separated from HTTP handling in views.
"""

# Clubs and team registration
from .clubs import (
    search_clubs,
    register_club_rep,
    register_team,
    recalculate_team_fees,
    get_team_player_fees,
)

# Discount code administration
from .discount_codes import (
    get_discount_codes,
    add_discount_code,
    bulk_add_discount_codes,
    update_discount_code,
    delete_discount_code,
    batch_update_status,
)

# Discounts applied to registrations
from .discounts import (
    apply_discount_to_players,
)

# Pool assignment
from .pool_assignment import (
    get_division_options,
    preview_transfer,
    transfer_teams,
)

# Pairings and division teams
from .pairings import (
    add_pairing_block,
    add_single_elimination,
    add_single_pairing,
    edit_pairing,
    delete_pairing,
    remove_all_pairings,
    get_division_pairings,
    get_who_plays_who,
    get_division_teams,
    edit_division_team,
)

# Timeslots
from .timeslots import (
    get_configuration,
    get_capacity_preview,
    add_date,
    edit_date,
    delete_date,
    delete_all_dates,
    clone_date,
    clone_dates,
    add_field_timeslot,
    edit_field_timeslot,
    delete_field_timeslot,
    delete_all_field_timeslots,
    clone_field_timeslots,
    clone_by_field,
    clone_by_division,
    clone_by_dow,
    clone_field_timeslot_to_next_dow,
)

# Schedule grid and game operations
from .grid import get_schedule_grid
from .game_operations import (
    place_game,
    move_game,
    delete_game,
    delete_division_games,
    auto_schedule_division,
    get_affected_game_count,
    adjust_for_weather,
)

# Auto-build
from .auto_build import (
    get_source_jobs,
    analyze_feasibility,
    build_schedule,
    undo_build,
)

# QA validation
from .validation import run_qa_validation

__all__ = [
    # Clubs and team registration
    "search_clubs",
    "register_club_rep",
    "register_team",
    "recalculate_team_fees",
    "get_team_player_fees",

    # Discount code administration
    "get_discount_codes",
    "add_discount_code",
    "bulk_add_discount_codes",
    "update_discount_code",
    "delete_discount_code",
    "batch_update_status",

    # Discounts applied to registrations
    "apply_discount_to_players",

    # Pool assignment
    "get_division_options",
    "preview_transfer",
    "transfer_teams",

    # Pairings and division teams
    "add_pairing_block",
    "add_single_elimination",
    "add_single_pairing",
    "edit_pairing",
    "delete_pairing",
    "remove_all_pairings",
    "get_division_pairings",
    "get_who_plays_who",
    "get_division_teams",
    "edit_division_team",

    # Timeslots
    "get_configuration",
    "get_capacity_preview",
    "add_date",
    "edit_date",
    "delete_date",
    "delete_all_dates",
    "clone_date",
    "clone_dates",
    "add_field_timeslot",
    "edit_field_timeslot",
    "delete_field_timeslot",
    "delete_all_field_timeslots",
    "clone_field_timeslots",
    "clone_by_field",
    "clone_by_division",
    "clone_by_dow",
    "clone_field_timeslot_to_next_dow",

    # Schedule grid and game operations
    "get_schedule_grid",
    "place_game",
    "move_game",
    "delete_game",
    "delete_division_games",
    "auto_schedule_division",
    "get_affected_game_count",
    "adjust_for_weather",

    # Auto-build
    "get_source_jobs",
    "analyze_feasibility",
    "build_schedule",
    "undo_build",

    # QA validation
    "run_qa_validation",
]
