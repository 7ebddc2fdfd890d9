"""Utility helpers for logging, console output and rule files."""
