"""HTTP/WebSocket adapter exposing the flow designer's mutation API."""
