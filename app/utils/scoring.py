"""
Scoring table for F1 Pick'em

Main race: 25-18-15-12-10-8-6-4-2-1 for positions 1-10.
Sprint: 8-7-6-5-4-3-2-1 for positions 1-8.
Anything else, including a missing position (DNF/DNS), scores 0.
"""

RACE_POINTS = {1: 25, 2: 18, 3: 15, 4: 12, 5: 10, 6: 8, 7: 6, 8: 4, 9: 2, 10: 1}

SPRINT_POINTS = {1: 8, 2: 7, 3: 6, 4: 5, 5: 4, 6: 3, 7: 2, 8: 1}


def get_race_points(position):
    """Points for a main-race finishing position"""
    if position is None:
        return 0
    return RACE_POINTS.get(position, 0)


def get_sprint_points(position):
    """Points for a sprint finishing position"""
    if position is None:
        return 0
    return SPRINT_POINTS.get(position, 0)


def get_total_points(race_position, sprint_position):
    return get_race_points(race_position) + get_sprint_points(sprint_position)
