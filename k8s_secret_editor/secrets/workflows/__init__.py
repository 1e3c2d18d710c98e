"""Workflows composing the secret domains."""
