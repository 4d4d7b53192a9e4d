"""Data grid agent backend."""
