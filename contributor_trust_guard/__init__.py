"""Contributor Trust Guard: trust evaluation for pull request authors."""

__version__ = "0.1.0"
