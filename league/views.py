import json
import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date, parse_datetime, parse_time
from django.views.decorators.csrf import csrf_exempt

from league.decorators import api_login_required, json_api
from league.models import Job
from league.services import (
    # Clubs and team registration
    search_clubs,
    register_club_rep,
    register_team,
    recalculate_team_fees,

    # Discount codes
    get_discount_codes,
    add_discount_code,
    bulk_add_discount_codes,
    update_discount_code,
    delete_discount_code,
    batch_update_status,
    apply_discount_to_players,

    # Pool assignment
    get_division_options,
    preview_transfer,
    transfer_teams,

    # Pairings
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

    # Timeslots
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

    # Schedule
    get_schedule_grid,
    place_game,
    move_game,
    delete_game,
    delete_division_games,
    auto_schedule_division,
    get_affected_game_count,
    adjust_for_weather,

    # Auto-build and QA
    get_source_jobs,
    analyze_feasibility,
    build_schedule,
    undo_build,
    run_qa_validation,
)

logger = logging.getLogger(__name__)


def _parse(parser, value, field):
    parsed = parser(value) if isinstance(value, str) else None
    if parsed is None:
        raise ValueError(f"Invalid {field}: {value}")
    return parsed


def _datetime(data, field):
    return _parse(parse_datetime, data[field], field)


def _date(data, field):
    return _parse(parse_date, data[field], field)


def _time(data, field):
    return _parse(parse_time, data[field], field)


def _optional_time(data, field):
    return _time(data, field) if data.get(field) else None


def _int(data, field):
    try:
        return int(data[field])
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a whole number")


def _optional_int(data, field):
    return _int(data, field) if data.get(field) is not None else None


def _team_data(team):
    return {
        "team_id": team.id,
        "team_name": team.name,
        "agegroup_id": team.agegroup_id,
        "club_id": team.club_id,
        "fee_base": team.fee_base,
        "fee_processing": team.fee_processing,
        "fee_total": team.fee_total,
        "owed_total": team.owed_total,
    }


# Clubs and teams

@api_login_required
@json_api("GET")
def club_search_endpoint(request):
    """API endpoint for fuzzy club search."""
    results = search_clubs(request.GET.get("q", ""), request.GET.get("state") or None)
    return JsonResponse({"clubs": results})


@api_login_required
@csrf_exempt
@json_api("POST")
def club_rep_register_endpoint(request, job_id):
    """API endpoint to register a new club and its rep."""
    data = json.loads(request.body)
    result = register_club_rep(
        job_id,
        data.get("club_name", ""),
        data["person_name"],
        email=data.get("email", ""),
        state=data.get("state", ""),
    )
    if result["status"] == "error":
        return JsonResponse(result, status=409)

    return JsonResponse({
        "status": "success",
        "message": result["message"],
        "club": {"club_id": result["club"].id, "club_name": result["club"].name},
        "registration_id": result["registration"].id,
        "similar_clubs": result["similar_clubs"],
    })


@api_login_required
@csrf_exempt
@json_api("POST")
def team_register_endpoint(request, job_id):
    """API endpoint for a club rep to register a team."""
    data = json.loads(request.body)
    result = register_team(
        job_id,
        _int(data, "club_rep_registration_id"),
        _int(data, "agegroup_id"),
        data.get("team_name", ""),
    )
    return JsonResponse({
        "status": "success",
        "message": result["message"],
        "team": _team_data(result["team"]),
    })


@api_login_required
@csrf_exempt
@json_api("POST")
def recalculate_team_fees_endpoint(request, job_id):
    return JsonResponse(recalculate_team_fees(job_id))


# Discount codes

@api_login_required
@csrf_exempt
@json_api("GET", "POST")
def discount_codes_endpoint(request, job_id):
    """Unified discount codes endpoint - GET for listing, POST for creating"""
    if request.method == "GET":
        return JsonResponse({"codes": get_discount_codes(job_id)})

    data = json.loads(request.body)
    code = add_discount_code(
        job_id,
        data.get("code_name", ""),
        bool(data.get("is_percentage")),
        data["amount"],
        _datetime(data, "start_date"),
        _datetime(data, "end_date"),
    )
    return JsonResponse({"status": "success", "code": code}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def discount_codes_bulk_endpoint(request, job_id):
    data = json.loads(request.body)
    codes = bulk_add_discount_codes(
        job_id,
        data.get("prefix", ""),
        _int(data, "count"),
        _int(data, "start_number"),
        bool(data.get("is_percentage")),
        data["amount"],
        _datetime(data, "start_date"),
        _datetime(data, "end_date"),
        suffix=data.get("suffix", ""),
    )
    return JsonResponse({"status": "success", "codes": codes}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def discount_codes_batch_status_endpoint(request, job_id):
    data = json.loads(request.body)
    updated = batch_update_status(job_id, data.get("code_ids", []), bool(data.get("is_active")))
    return JsonResponse({"status": "success", "updated_count": updated})


@api_login_required
@csrf_exempt
@json_api("PUT", "DELETE")
def discount_code_detail_endpoint(request, code_id):
    """API endpoint for individual discount code operations."""
    if request.method == "DELETE":
        result = delete_discount_code(code_id)
        return JsonResponse(result, status=400 if result["status"] == "error" else 200)

    data = json.loads(request.body)
    code = update_discount_code(
        code_id,
        bool(data.get("is_percentage")),
        data["amount"],
        _datetime(data, "start_date"),
        _datetime(data, "end_date"),
        bool(data.get("is_active", True)),
    )
    return JsonResponse({"status": "success", "code": code})


@api_login_required
@csrf_exempt
@json_api("POST")
def apply_discount_endpoint(request, job_id):
    """API endpoint to apply a discount code to player registrations."""
    data = json.loads(request.body)
    result = apply_discount_to_players(job_id, data.get("code", ""), data.get("items", []))
    return JsonResponse(result)


# Pool assignment

@api_login_required
@json_api("GET")
def pool_divisions_endpoint(request, job_id):
    get_object_or_404(Job, pk=job_id)
    return JsonResponse({"divisions": get_division_options(job_id)})


@api_login_required
@csrf_exempt
@json_api("POST")
def pool_preview_endpoint(request, job_id):
    data = json.loads(request.body)
    result = preview_transfer(
        job_id,
        _int(data, "source_division_id"),
        _int(data, "target_division_id"),
        data.get("source_team_ids", []),
        data.get("target_team_ids") or None,
    )
    return JsonResponse(result)


@api_login_required
@csrf_exempt
@json_api("POST")
def pool_transfer_endpoint(request, job_id):
    """API endpoint to move or swap teams between divisions."""
    data = json.loads(request.body)
    result = transfer_teams(
        job_id,
        _int(data, "source_division_id"),
        _int(data, "target_division_id"),
        data.get("source_team_ids", []),
        target_team_ids=data.get("target_team_ids") or None,
        symmetrical_swap=bool(data.get("symmetrical_swap")),
    )
    return JsonResponse(result)


# Pairings

@api_login_required
@csrf_exempt
@json_api("POST")
def pairing_block_endpoint(request, job_id):
    data = json.loads(request.body)
    pairings = add_pairing_block(job_id, _int(data, "team_count"), _int(data, "rounds"))
    return JsonResponse({"status": "success", "pairings": pairings}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def pairing_elimination_endpoint(request, job_id):
    data = json.loads(request.body)
    pairings = add_single_elimination(job_id, _int(data, "team_count"), data.get("start_key", ""))
    return JsonResponse({"status": "success", "pairings": pairings}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def pairing_single_endpoint(request, job_id):
    data = json.loads(request.body)
    pairing = add_single_pairing(job_id, _int(data, "team_count"))
    return JsonResponse({"status": "success", "pairing": pairing}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def pairing_remove_all_endpoint(request, job_id):
    data = json.loads(request.body)
    deleted = remove_all_pairings(job_id, _int(data, "team_count"))
    return JsonResponse({"status": "success", "deleted_count": deleted})


@api_login_required
@json_api("GET")
def who_plays_who_endpoint(request, job_id):
    return JsonResponse(get_who_plays_who(job_id, _int(request.GET, "team_count")))


@api_login_required
@csrf_exempt
@json_api("PUT", "DELETE")
def pairing_detail_endpoint(request, pairing_id):
    if request.method == "DELETE":
        delete_pairing(pairing_id)
        return JsonResponse({"status": "success"})

    data = json.loads(request.body)
    pairing = edit_pairing(pairing_id, **data)
    return JsonResponse({"status": "success", "pairing": pairing})


@api_login_required
@json_api("GET")
def division_pairings_endpoint(request, division_id):
    return JsonResponse(get_division_pairings(division_id))


@api_login_required
@json_api("GET")
def division_teams_endpoint(request, division_id):
    return JsonResponse({"teams": get_division_teams(division_id)})


@api_login_required
@csrf_exempt
@json_api("PUT")
def division_team_detail_endpoint(request, job_id, team_id):
    """API endpoint to rename a team or change its division rank."""
    data = json.loads(request.body)
    teams = edit_division_team(
        job_id,
        team_id,
        div_rank=_optional_int(data, "div_rank"),
        team_name=data.get("team_name"),
    )
    return JsonResponse({"status": "success", "teams": teams})


# Timeslots

@api_login_required
@json_api("GET")
def timeslot_configuration_endpoint(request, agegroup_id):
    return JsonResponse(get_configuration(agegroup_id))


@api_login_required
@json_api("GET")
def capacity_preview_endpoint(request, agegroup_id):
    return JsonResponse({"capacity": get_capacity_preview(agegroup_id)})


@api_login_required
@csrf_exempt
@json_api("POST", "DELETE")
def timeslot_dates_endpoint(request, agegroup_id):
    """POST adds a game date, DELETE removes every date of the agegroup."""
    if request.method == "DELETE":
        return JsonResponse({"status": "success", "deleted_count": delete_all_dates(agegroup_id)})

    data = json.loads(request.body)
    date_row = add_date(
        agegroup_id,
        _date(data, "gdate"),
        _int(data, "rnd"),
        division_id=_optional_int(data, "division_id"),
    )
    return JsonResponse({"status": "success", "date": date_row}, status=201)


@api_login_required
@csrf_exempt
@json_api("PUT", "DELETE")
def timeslot_date_detail_endpoint(request, date_id):
    if request.method == "DELETE":
        delete_date(date_id)
        return JsonResponse({"status": "success"})

    data = json.loads(request.body)
    date_row = edit_date(date_id, _date(data, "gdate"), _int(data, "rnd"))
    return JsonResponse({"status": "success", "date": date_row})


@api_login_required
@csrf_exempt
@json_api("POST")
def timeslot_date_clone_endpoint(request, date_id):
    data = json.loads(request.body)
    date_row = clone_date(date_id, data.get("mode", ""))
    return JsonResponse({"status": "success", "date": date_row}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def timeslot_dates_clone_endpoint(request, agegroup_id):
    data = json.loads(request.body)
    count = clone_dates(agegroup_id, _int(data, "target_agegroup_id"))
    return JsonResponse({"status": "success", "cloned_count": count})


@api_login_required
@csrf_exempt
@json_api("POST", "DELETE")
def field_timeslots_endpoint(request, agegroup_id):
    """POST adds field timeslots, DELETE removes every field timeslot of the agegroup."""
    if request.method == "DELETE":
        return JsonResponse({"status": "success", "deleted_count": delete_all_field_timeslots(agegroup_id)})

    data = json.loads(request.body)
    timeslots = add_field_timeslot(
        agegroup_id,
        data.get("dow", ""),
        _time(data, "start_time"),
        _int(data, "interval_minutes"),
        _int(data, "max_games"),
        field_id=_optional_int(data, "field_id"),
        division_id=_optional_int(data, "division_id"),
    )
    return JsonResponse({"status": "success", "fields": timeslots}, status=201)


@api_login_required
@csrf_exempt
@json_api("PUT", "DELETE")
def field_timeslot_detail_endpoint(request, timeslot_id):
    if request.method == "DELETE":
        delete_field_timeslot(timeslot_id)
        return JsonResponse({"status": "success"})

    data = json.loads(request.body)
    timeslot = edit_field_timeslot(
        timeslot_id,
        data.get("dow", ""),
        _time(data, "start_time"),
        _int(data, "interval_minutes"),
        _int(data, "max_games"),
        field_id=_optional_int(data, "field_id"),
        division_id=_optional_int(data, "division_id"),
    )
    return JsonResponse({"status": "success", "field": timeslot})


@api_login_required
@csrf_exempt
@json_api("POST")
def field_timeslot_next_dow_endpoint(request, timeslot_id):
    timeslot = clone_field_timeslot_to_next_dow(timeslot_id)
    return JsonResponse({"status": "success", "field": timeslot}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def field_timeslots_clone_endpoint(request, agegroup_id):
    """
    Copy field timeslots within or out of an agegroup.

    ``mode`` picks what is copied: ``agegroup`` (to target_agegroup_id),
    ``field``, ``division`` or ``dow`` (from source_* to target_*).
    """
    data = json.loads(request.body)
    mode = data.get("mode", "")
    if mode == "agegroup":
        count = clone_field_timeslots(agegroup_id, _int(data, "target_agegroup_id"))
    elif mode == "field":
        count = clone_by_field(agegroup_id, _int(data, "source_field_id"), _int(data, "target_field_id"))
    elif mode == "division":
        count = clone_by_division(
            agegroup_id, _int(data, "source_division_id"), _int(data, "target_division_id")
        )
    elif mode == "dow":
        count = clone_by_dow(
            agegroup_id,
            data["source_dow"],
            data["target_dow"],
            new_start_time=_optional_time(data, "new_start_time"),
        )
    else:
        raise ValueError(f"Invalid clone mode: {mode}")
    return JsonResponse({"status": "success", "cloned_count": count})


# Schedule

@api_login_required
@json_api("GET")
def schedule_grid_endpoint(request, division_id):
    return JsonResponse(get_schedule_grid(division_id))


@api_login_required
@csrf_exempt
@json_api("POST", "DELETE")
def division_games_endpoint(request, division_id):
    """POST places a pairing on the grid, DELETE clears the division's games."""
    if request.method == "DELETE":
        return JsonResponse({"status": "success", "deleted_count": delete_division_games(division_id)})

    data = json.loads(request.body)
    game = place_game(
        division_id, _int(data, "pairing_id"), _int(data, "field_id"), _datetime(data, "gdate")
    )
    return JsonResponse({"status": "success", "game": game.to_dict()}, status=201)


@api_login_required
@csrf_exempt
@json_api("POST")
def auto_schedule_endpoint(request, division_id):
    return JsonResponse(auto_schedule_division(division_id))


@api_login_required
@csrf_exempt
@json_api("POST")
def move_game_endpoint(request, game_id):
    data = json.loads(request.body)
    return JsonResponse(move_game(game_id, _int(data, "field_id"), _datetime(data, "gdate")))


@api_login_required
@csrf_exempt
@json_api("DELETE")
def game_detail_endpoint(request, game_id):
    delete_game(game_id)
    return JsonResponse({"status": "success"})


@api_login_required
@csrf_exempt
@json_api("POST")
def weather_preview_endpoint(request, job_id):
    data = json.loads(request.body)
    count = get_affected_game_count(job_id, _datetime(data, "pre_first_game"), data.get("field_ids", []))
    return JsonResponse({"affected_games": count})


@api_login_required
@csrf_exempt
@json_api("POST")
def weather_adjust_endpoint(request, job_id):
    """API endpoint to shift a game day's remaining games after a weather delay."""
    data = json.loads(request.body)
    result = adjust_for_weather(
        job_id,
        _datetime(data, "pre_first_game"),
        _int(data, "pre_interval"),
        _datetime(data, "post_first_game"),
        _int(data, "post_interval"),
        data.get("field_ids", []),
    )
    return JsonResponse(result, status=200 if result["success"] else 400)


# Auto-build and QA

@api_login_required
@json_api("GET")
def auto_build_sources_endpoint(request, job_id):
    return JsonResponse({"jobs": get_source_jobs(job_id)})


@api_login_required
@csrf_exempt
@json_api("POST")
def auto_build_analyze_endpoint(request, job_id):
    data = json.loads(request.body)
    return JsonResponse(analyze_feasibility(job_id, _int(data, "source_job_id")))


@api_login_required
@csrf_exempt
@json_api("POST")
def auto_build_endpoint(request, job_id):
    """API endpoint to build the whole schedule from a prior season."""
    data = json.loads(request.body)
    result = build_schedule(
        job_id,
        _int(data, "source_job_id"),
        skip_division_ids=data.get("skip_division_ids", []),
        skip_already_scheduled=bool(data.get("skip_already_scheduled")),
        include_bracket_games=bool(data.get("include_bracket_games")),
        resolutions=data.get("resolutions", {}),
    )
    return JsonResponse(result)


@api_login_required
@csrf_exempt
@json_api("POST")
def auto_build_undo_endpoint(request, job_id):
    return JsonResponse({"status": "success", "deleted_count": undo_build(job_id)})


@api_login_required
@json_api("GET")
def qa_validation_endpoint(request, job_id):
    return JsonResponse(run_qa_validation(job_id))
