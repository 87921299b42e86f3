"""Rendering helpers for terminal map views."""
