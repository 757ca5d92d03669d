"""
TELELINK Test Suite

Test Organization:
    tests/
    ├── __init__.py          # This file
    ├── conftest.py          # Shared fixtures (mock driver, fake clock)
    ├── mocks/               # In-memory driver and clock
    ├── integration/         # Client flows across session, buffer and faults
    └── unit/                # Unit tests (no network, no hardware)

Running Tests:
    # Run all tests
    pytest tests/

Requirements:
    pip install -e ".[test]"
"""
