"""Local consumption tracker core."""
