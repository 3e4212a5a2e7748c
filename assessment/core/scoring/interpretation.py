"""
Proficiency labels for percentage scores.
"""
from typing import List, Tuple

# (lower bound inclusive, label), highest first
PROFICIENCY_BANDS: List[Tuple[float, str]] = [
    (85.0, "Expert"),
    (70.0, "Advanced"),
    (50.0, "Proficient"),
    (30.0, "Developing"),
]
LOWEST_PROFICIENCY_LABEL = "Beginning"


def proficiency_label(percentage: float) -> str:
    """
    Label for a 0-100 percentage.

    Example:
        >>> proficiency_label(72.5)
        'Advanced'
    """
    for lower_bound, label in PROFICIENCY_BANDS:
        if percentage >= lower_bound:
            return label
    return LOWEST_PROFICIENCY_LABEL
