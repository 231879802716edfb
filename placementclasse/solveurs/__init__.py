"""Moteurs de placement."""
