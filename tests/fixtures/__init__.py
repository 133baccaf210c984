"""Shared testing fixtures for the study_quiz test suite."""

from .bank import FakeClock, sample_raw_bank, write_bank  # noqa: F401

__all__ = [
    "FakeClock",
    "sample_raw_bank",
    "write_bank",
]
