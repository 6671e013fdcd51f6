"""Inventory persistence."""
