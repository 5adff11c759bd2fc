"""Adaptive exit rules and evolutionary threshold tuning."""
