"""Generators — assemble registry items from scanned projects."""
