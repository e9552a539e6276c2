"""HTTP and WebSocket service hosting Hi-Lo grid games."""
