"""Shared helpers for the stepwise packages."""
