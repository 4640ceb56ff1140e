"""Relay server core: broker state, WebSocket layer, HTTP app."""
