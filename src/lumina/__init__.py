"""Lumina realtime — notification fan-out, presence and call signaling.

The real-time layer of the Lumina social backend: it routes notification
pushes and call-signaling frames from server-side state changes to the
connected devices of each user, and keeps the durable notification record
that every push is backed by.
"""

__version__ = "0.1.0"
