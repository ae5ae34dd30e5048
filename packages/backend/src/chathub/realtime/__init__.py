"""Real-time infrastructure — per-user WebSocket fan-out.

Learn: Events flow in one direction per concern:
1. REST mutation → store commit → BroadcastRouter.publish (server-side fan-out)
2. ConnectionRegistry → every live socket of that user (delivery)
3. Typing frames skip storage: socket → router → the user's other sockets

Everything is in-process: one registry per server process, no broker.
"""
