"""Utility helpers for mdkanban."""
