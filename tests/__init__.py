"""Cruxboard test suite."""
