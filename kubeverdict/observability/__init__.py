"""Logging and metrics for kubeverdict."""
