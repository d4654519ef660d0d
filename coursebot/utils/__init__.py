"""CourseBot utilities."""

from .numbers import round_half_up, percent_of

__all__ = [
    "round_half_up",
    "percent_of",
]
