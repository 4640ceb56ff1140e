"""
WebSocket layer: transport adapter, event envelopes, per-connection session loop.

The route lives in strangers.core.websocket.routes and is imported by the app directly.
"""
