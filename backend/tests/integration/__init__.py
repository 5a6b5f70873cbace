"""Integration tests for the refresh service.

Integration tests:
- Use an in-memory SQLite database
- Exercise the API through FastAPI's TestClient
- Test component interactions end to end

Markers:
- @pytest.mark.integration - All integration tests
"""
