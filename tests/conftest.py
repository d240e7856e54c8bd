"""
Pytest configuration and fixtures for the BFI calendar tests.
"""

import os

import pytest
from hypothesis import Verbosity
from hypothesis import settings

from pages import BASE_URL

# Keep property tests quick by default; HYPOTHESIS_PROFILE=thorough for more examples.
settings.register_profile("fast", max_examples=25, deadline=None, verbosity=Verbosity.quiet)
settings.register_profile("thorough", max_examples=500, deadline=None, verbosity=Verbosity.normal)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "fast"))


@pytest.fixture
def base_url() -> str:
    return BASE_URL
