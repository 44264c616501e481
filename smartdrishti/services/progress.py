import math
from typing import Iterable, Tuple


def compute_progress(statuses: Iterable[str]) -> Tuple[int, int, int]:
    """
    Returns (total_steps, completed_steps, progress) for a project.

    Only 'completed' counts; 'working' is still incomplete. Halves round up,
    so 1 of 8 steps is 13%.
    """
    statuses = list(statuses)
    total = len(statuses)
    completed = sum(1 for status in statuses if status == 'completed')
    if total == 0:
        return 0, 0, 0
    return total, completed, int(math.floor(100 * completed / total + 0.5))


def progress_fields(statuses: Iterable[str]) -> dict:
    total, completed, progress = compute_progress(statuses)
    # counts are strings in the API payload, the frontend parses them
    return {
        'total_steps': str(total),
        'completed_steps': str(completed),
        'progress': progress,
    }
