"""Utility helpers for blockdoc."""
