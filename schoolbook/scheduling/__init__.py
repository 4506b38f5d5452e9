"""Scheduling core: state machine, booking guard, persistence and services."""
