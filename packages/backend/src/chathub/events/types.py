"""Push channel event names.

Learn: Centralizing event names as constants prevents typos and makes it
easy to discover the whole wire vocabulary. Names are camelCase because
browser clients consume them directly.
"""

# ─── Inbound (connection → hub) ──────────────────────────

AUTH = "auth"
TYPING = "typing"
PING = "ping"
PONG = "pong"

# ─── Outbound (hub → connection) ─────────────────────────

MESSAGE_UPDATE = "messageUpdate"
MESSAGE_DELETE = "messageDelete"
# TYPING, PING and PONG are also sent outbound
