"""Logging setup."""
