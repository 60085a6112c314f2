"""Repository layer namespace."""
