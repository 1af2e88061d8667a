"""Level thresholds and computation.

Level is a pure function of total points: the highest level whose cumulative
requirement is met. Values MUST match the web client's level table.
"""

from __future__ import annotations

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Newcomer", "points_required": 0, "cumulative": 0},
    {"level": 2, "title": "Listener", "points_required": 100, "cumulative": 100},
    {"level": 3, "title": "First Words", "points_required": 150, "cumulative": 250},
    {"level": 4, "title": "Storyteller's Apprentice", "points_required": 250, "cumulative": 500},
    {"level": 5, "title": "Conversationalist", "points_required": 500, "cumulative": 1000},
    {"level": 6, "title": "Keeper of Words", "points_required": 750, "cumulative": 1750},
    {"level": 7, "title": "Cultural Explorer", "points_required": 1000, "cumulative": 2750},
    {"level": 8, "title": "Song Carrier", "points_required": 1500, "cumulative": 4250},
    {"level": 9, "title": "Guardian of Memory", "points_required": 2000, "cumulative": 6250},
    {"level": 10, "title": "Fluent Speaker", "points_required": 3750, "cumulative": 10000},
    {"level": 15, "title": "Mentor", "points_required": 15000, "cumulative": 25000},
    {"level": 20, "title": "Elder's Voice", "points_required": 25000, "cumulative": 50000},
    {"level": 25, "title": "Taita", "points_required": 50000, "cumulative": 100000},
]


def calculate_level(points: int) -> int:
    """Return the level reached with ``points`` total points.

    Monotonic non-decreasing and total: negative totals clamp to level 1.
    """
    level = LEVEL_THRESHOLDS[0]["level"]
    for threshold in LEVEL_THRESHOLDS:
        if points < threshold["cumulative"]:
            break
        level = threshold["level"]
    return level


def compute_level(points: int) -> dict:
    """Level info with title and progress towards the next level."""
    index = 0
    for i, threshold in enumerate(LEVEL_THRESHOLDS):
        if points >= threshold["cumulative"]:
            index = i

    current = LEVEL_THRESHOLDS[index]
    next_level = LEVEL_THRESHOLDS[min(index + 1, len(LEVEL_THRESHOLDS) - 1)]

    points_into_level = max(0, points - current["cumulative"])
    points_for_level = next_level["cumulative"] - current["cumulative"]

    # At max level, avoid division by zero
    if points_for_level == 0:
        points_for_level = 1

    return {
        "level": current["level"],
        "title": current["title"],
        "points_into_level": points_into_level,
        "points_for_level": points_for_level,
        "next_level": next_level["level"],
        "next_title": next_level["title"],
    }


def level_title(level: int) -> str:
    """Title of the highest threshold at or below ``level``."""
    title = LEVEL_THRESHOLDS[0]["title"]
    for threshold in LEVEL_THRESHOLDS:
        if threshold["level"] > level:
            break
        title = threshold["title"]
    return title
