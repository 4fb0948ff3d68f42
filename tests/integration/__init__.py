"""Integration tests for pytranehome library.

These tests use real API credentials from .env file and make actual API calls.
They are marked with @pytest.mark.integration and skipped by default.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables required in .env:
    TRANE_USERNAME: Account email
    TRANE_PASSWORD: Account password
    TRANE_API_BASE_URL: API base URL (optional, defaults to production)
    TRANE_HOUSE_ID: House to use (optional, defaults to the first house)
"""
