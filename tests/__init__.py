"""Tests for the fuzzy search package.

Unit tests run against the in-memory store and repositories; nothing here
needs a database.
"""
