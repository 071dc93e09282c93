"""Data models, errors and configuration."""
