"""Unit tests for the refresh service.

Unit tests should:
- Not require a database or any network service
- Test individual functions and classes in isolation
- Use fakes or mocks for collaborators
"""
