"""
Utility functions for the Rotation Planner application.

This module contains common time helpers used throughout the application.
"""
import time


def now_ts() -> float:
    """
    Get current timestamp in epoch seconds.

    Returns:
        Current time as floating point epoch seconds
    """
    return time.time()
