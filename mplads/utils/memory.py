"""Memory utilities for cache pressure checks."""

import psutil
from typing import Tuple


def get_process_memory_mb() -> float:
    """Get resident memory of the current process in MB.

    Returns:
        Resident set size in megabytes (float)
    """
    return psutil.Process().memory_info().rss / (1024 ** 2)


def get_available_memory_gb() -> float:
    """Get available system memory in GB.

    Returns:
        Available memory in gigabytes (float)
    """
    memory = psutil.virtual_memory()
    return memory.available / (1024 ** 3)


def memory_pressure(ceiling_mb: float, threshold: float = 0.8) -> Tuple[bool, float, str]:
    """Check process memory against a configured ceiling.

    Args:
        ceiling_mb: Memory ceiling for the process in MB
        threshold: Fraction of the ceiling at which pressure starts (0.0-1.0)

    Returns:
        Tuple of (under_pressure, used_mb, reasoning)
    """
    used_mb = get_process_memory_mb()
    limit_mb = ceiling_mb * threshold
    under_pressure = used_mb > limit_mb

    if under_pressure:
        reasoning = f"High memory ({used_mb:.0f}MB used > {limit_mb:.0f}MB limit, {get_available_memory_gb():.1f}GB free on host)"
    else:
        reasoning = f"Memory OK ({used_mb:.0f}MB used of {limit_mb:.0f}MB limit)"

    return under_pressure, used_mb, reasoning
