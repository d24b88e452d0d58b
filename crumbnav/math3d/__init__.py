"""Quaternion, coordinate and rigid-transform helpers."""
