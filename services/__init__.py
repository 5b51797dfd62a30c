"""Chat request matchmaking services."""
