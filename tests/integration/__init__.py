"""TELELINK integration tests."""
