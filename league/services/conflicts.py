"""
Conflict detection over a materialized schedule grid.

A grid is a list of rows ``{"gdate": ..., "cells": [...]}``, one row per
timeslot and one cell per field column. A cell is either ``None`` or a game
dict carrying at least ``gid``, ``t1_id``, ``t2_id`` and
``is_slot_collision``. Rows may span several divisions, so a team is
identified by its team id rather than its rank.
"""

from datetime import date, datetime


def _row_day(gdate):
    if isinstance(gdate, datetime):
        return gdate.date()
    if isinstance(gdate, date):
        return gdate
    return datetime.fromisoformat(str(gdate)).date()


def _team_games(cells):
    """Map team id -> game ids for the non-empty cells of one row."""
    team_games = {}
    for cell in cells:
        if not cell:
            continue
        for team_id in (cell.get("t1_id"), cell.get("t2_id")):
            if not team_id:
                continue
            team_games.setdefault(team_id, []).append(cell["gid"])
    return team_games


def compute_time_clash_game_ids(rows):
    """Breaking: the same team in two or more games in the same timeslot."""
    clashed = set()
    for row in rows:
        for game_ids in _team_games(row["cells"]).values():
            if len(game_ids) > 1:
                clashed.update(game_ids)
    return clashed


def compute_back_to_back_game_ids(rows):
    """Non-breaking: the same team in consecutive timeslots on the same day."""
    back_to_back = set()
    for current, following in zip(rows, rows[1:]):
        if _row_day(current["gdate"]) != _row_day(following["gdate"]):
            continue

        current_teams = _team_games(current["cells"])
        for cell in following["cells"]:
            if not cell:
                continue
            for team_id in (cell.get("t1_id"), cell.get("t2_id")):
                if team_id and team_id in current_teams:
                    back_to_back.update(current_teams[team_id])
                    back_to_back.add(cell["gid"])
    return back_to_back


def count_breaking_conflicts(rows, time_clash_ids):
    count = len(time_clash_ids)
    for row in rows:
        count += sum(1 for cell in row["cells"] if cell and cell.get("is_slot_collision"))
    return count


def is_slot_collision(game):
    return game.get("is_slot_collision") is True


def is_time_clash(game, clash_ids):
    return game["gid"] in clash_ids


def is_back_to_back(game, back_to_back_ids):
    return game["gid"] in back_to_back_ids


def is_breaking(game, clash_ids):
    return is_slot_collision(game) or is_time_clash(game, clash_ids)
