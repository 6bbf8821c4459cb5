"""Shared helpers: logging setup and project code normalization."""
