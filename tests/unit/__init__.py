"""TELELINK unit tests."""
