"""Flip Seven rules engine and supporting services."""
