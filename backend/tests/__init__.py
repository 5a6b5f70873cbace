"""Sermon audio refresh service test suite.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures for all tests
    ├── unit/                # Unit tests (no database, no network)
    ├── integration/         # Database and API tests (in-memory SQLite)
    └── fixtures/            # Sample transcription data

Run all tests:
    pytest

Run specific test categories:
    pytest -m unit
    pytest -m integration
"""
