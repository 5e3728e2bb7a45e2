# app/services/accessibility.py
"""
Accessibility policies shared by every route kind.

All functions here are pure: they take the requested RouteParameters (and
sometimes a distance) and return numbers or labels. Thresholds are compared
inclusively, exactly as listed in the tables below.
"""

from typing import List, Literal, Sequence

from app.models.routing import AccessibilityAssessment, Barrier, RouteParameters

BASE_SPEED_MPS = 1.0
MIN_SPEED_MPS = 0.8
MAX_SPEED_MPS = 1.3

# (predicate on params, multiplier). Stricter requirements mean detours and a
# slower pace; looser requirements mean shorter, quicker routes.
SPEED_RULES = (
    (lambda p: p.maximum_incline <= 0.05, 0.9),
    (lambda p: p.maximum_incline >= 0.10, 1.1),
    (lambda p: p.minimum_width >= 1.2, 0.85),
    (lambda p: p.minimum_width <= 0.8, 1.05),
)

BASE_SCORE = 100.0
SCORE_CAP = 100.0

# Inverted ordering: a lower score gives the "high" label.
BASIC_LEVEL_MIN_SCORE = 110.0
MEDIUM_LEVEL_MIN_SCORE = 95.0

NOTE_LOW_INCLINE = "low-incline-preferred"
NOTE_WIDE_ROAD = "wide-road"
NOTE_DEFAULT = "standard accessible route"
NOTE_SEPARATOR = ", "

Template = Literal["high", "standard", "basic"]


def walking_speed_mps(params: RouteParameters) -> float:
    """
    Assumed wheelchair walking speed for the given requirements, in m/s.
    Always within [MIN_SPEED_MPS, MAX_SPEED_MPS].
    """
    speed = BASE_SPEED_MPS
    for applies, multiplier in SPEED_RULES:
        if applies(params):
            speed *= multiplier
    return max(MIN_SPEED_MPS, min(MAX_SPEED_MPS, speed))


def accessible_duration_s(distance_m: float, params: RouteParameters) -> int:
    """
    Duration in whole seconds for distance_m at the policy speed (minimum 1 s).
    """
    return max(1, round(distance_m / walking_speed_mps(params)))


def accessibility_score(params: RouteParameters) -> float:
    """
    Raw (unclamped) score derived from the requirements alone.
    """
    score = BASE_SCORE

    if params.maximum_incline <= 0.05:
        score -= 10
    elif params.maximum_incline >= 0.12:
        score += 15

    if params.minimum_width >= 1.2:
        score -= 8
    elif params.minimum_width <= 0.7:
        score += 12

    return score


def level_for_score(score: float) -> str:
    if score >= BASIC_LEVEL_MIN_SCORE:
        return "basic"
    if score >= MEDIUM_LEVEL_MIN_SCORE:
        return "medium"
    return "high"


def accessibility_notes(params: RouteParameters) -> str:
    notes: List[str] = []
    if params.maximum_incline <= 0.05:
        notes.append(NOTE_LOW_INCLINE)
    if params.minimum_width >= 1.0:
        notes.append(NOTE_WIDE_ROAD)
    return NOTE_SEPARATOR.join(notes) if notes else NOTE_DEFAULT


def assess_parameters(
    params: RouteParameters,
    barriers: Sequence[Barrier] = (),
) -> AccessibilityAssessment:
    """
    Build the assessment attached to a route when no live barrier data
    changes the picture. The level is taken from the raw score; the score
    reported to clients is capped at SCORE_CAP.
    """
    raw = accessibility_score(params)
    return AccessibilityAssessment(
        level=level_for_score(raw),
        score=min(SCORE_CAP, raw),
        notes=accessibility_notes(params),
        barriers=list(barriers),
        suitable_for_wheelchair=not barriers,
    )


def template_for(params: RouteParameters) -> Template:
    """
    Pick the synthetic route template by how strict the requirements are.
    """
    if params.maximum_incline <= 0.05 and params.minimum_width >= 1.0:
        return "high"
    if params.maximum_incline <= 0.08 and params.minimum_width >= 0.9:
        return "standard"
    return "basic"
