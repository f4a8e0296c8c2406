"""Real-time infrastructure — sessions, rooms, notifications, call signaling.

Learn: Events flow in one direction per concern:
1. Domain handlers → NotificationService → RoomRouter → TransportGateway → sockets
2. Sockets → TransportGateway → RoomRouter.join / SignalingCoordinator

Everything is single-process and in-memory; the durable notification row
is the only thing that survives a restart.
"""
