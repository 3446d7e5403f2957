"""
Fuzzy club-name matching.

Club reps type club names freehand, so the same club shows up as
"Atlanta LC", "Atlanta Lacrosse Club" and "atlanta lacrosse club ".
Names are normalized first, then compared by Levenshtein edit distance.
"""

import re

from Levenshtein import distance

# Plain substring replacement, applied in order
ABBREVIATIONS = [
    ("lax", "lacrosse"),
    ("lc", "lacrosse club"),
    ("fc", "football club"),
    ("sc", "soccer club"),
    ("yc", "youth club"),
]

_NON_ALNUM = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


class ClubNameMatcher:

    @staticmethod
    def normalize_club_name(name):
        if not name or not name.strip():
            return ""

        normalized = name.lower()
        for abbreviation, expansion in ABBREVIATIONS:
            normalized = normalized.replace(abbreviation, expansion)

        normalized = _NON_ALNUM.sub("", normalized)
        return _WHITESPACE.sub(" ", normalized).strip()

    @staticmethod
    def levenshtein_distance(s1, s2):
        return distance(s1 or "", s2 or "")

    @classmethod
    def calculate_similarity(cls, s1, s2):
        """Similarity score 0-100, where 100 means identical."""
        s1 = s1 or ""
        s2 = s2 or ""
        if not s1 and not s2:
            return 100
        if not s1 or not s2:
            return 0

        distance = cls.levenshtein_distance(s1, s2)
        max_length = max(len(s1), len(s2))
        return int(round((1 - distance / max_length) * 100))

    @classmethod
    def are_similar(cls, name1, name2, threshold=80):
        return cls.calculate_similarity(
            cls.normalize_club_name(name1), cls.normalize_club_name(name2)
        ) >= threshold

    @staticmethod
    def clean_team_name(team_name, club_name):
        """Strip a leading club name (or a recognizable abbreviation of it) from a team name."""
        trimmed = (team_name or "").strip()
        club = (club_name or "").strip()
        if not club or trimmed.lower() == club.lower():
            return trimmed

        def strip_prefix(prefix):
            if trimmed.lower().startswith(prefix.lower() + " "):
                return trimmed[len(prefix) + 1:].strip()
            return None

        remainder = strip_prefix(club)
        if remainder is not None:
            return remainder

        club_words = club.split()
        if len(club_words) < 2:
            return trimmed

        for prefix in (" ".join(club_words[:2]), club_words[1]):
            remainder = strip_prefix(prefix)
            if remainder is not None:
                return remainder

        team_words = trimmed.split()
        if team_words and 2 <= len(team_words[0]) <= 4:
            abbreviation = team_words[0].lower()
            initials = (club_words[0][0] + club_words[1][0]).lower()
            first_plus_initial = (club_words[0] + club_words[1][0]).lower()
            if abbreviation in (initials, first_plus_initial):
                return " ".join(team_words[1:]).strip()

        remainder = strip_prefix(club_words[0])
        if remainder is not None and remainder.lower() != club_words[1].lower():
            return remainder

        return trimmed
