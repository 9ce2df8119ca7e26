"""Helpers shared by services."""
