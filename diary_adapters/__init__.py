"""Adapters translating stored diary data into core domain models."""
