"""Application assembly for the turn relay server."""
