"""Interfaces exposed by the host editor."""
