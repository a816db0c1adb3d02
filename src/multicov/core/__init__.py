"""Core utilities shared by all multicov components."""
