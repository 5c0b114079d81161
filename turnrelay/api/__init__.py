"""HTTP and WebSocket routes for the turn relay."""
