"""chathub — multi-user AI chat with live multi-session updates.

Users talk to an AI responder over a REST API and every one of their open
sessions receives message lifecycle events (create, edit, delete, favorite,
reaction, typing) over a per-user WebSocket fan-out hub.
"""

__version__ = "0.1.0"
