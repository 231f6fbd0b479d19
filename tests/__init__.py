"""
Test suite for the dynamic provider.

Test structure:
- unit/ - Unit tests (fast, isolated, in-process)
- integration/ - Integration tests (start a real provider process)
- fixtures/ - Handler sources used as __provider values

Run tests:
    pytest                    # All tests
    pytest tests/unit         # Unit tests only
    pytest -m integration     # Process-level tests only
"""
