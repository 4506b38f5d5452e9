"""In-process event bus and websocket fan-out."""
