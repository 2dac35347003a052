"""Reusable helpers for running external tools and loading configuration files."""
