"""
DoseRound Test Suite
====================

This package contains all tests for the DoseRound dose scheduling backend.

Test Structure:
- test_tools/: Scheduling engine tests (time windows, grouping, dose status)
- test_services/: Reminder sources and schedule view tests
- test_api/: API endpoint tests for FastAPI routes
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_api/

    # Run only marked tests
    pytest -m "api"
    pytest -m "database"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"

__all__ = [
    "TEST_DATABASE_URL",
]
