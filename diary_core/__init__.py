"""Core aggregation logic for the pain and medication diary.

This package contains the classification rules, calendar aggregation and
report assembly, isolated from storage and rendering for easy testing.
"""
