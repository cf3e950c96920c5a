"""Core driver primitives."""
