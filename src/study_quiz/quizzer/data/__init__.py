"""Packaged question bank data."""
