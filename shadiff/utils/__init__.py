"""Utilities — scanning, filtering, and classifying project files."""
