"""Alignment, arbitration and session control."""
