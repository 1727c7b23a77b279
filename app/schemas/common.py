"""
Validators shared across schemas
"""
import re

CLOCK_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_clock_time(value):
    """Accept None or an "HH:MM" 24-hour clock string."""
    if value is not None and not CLOCK_TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value
