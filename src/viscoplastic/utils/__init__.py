"""Utility helpers (run-time info printing)."""
