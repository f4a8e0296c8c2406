"""Authentication.

Learn: Lumina's main backend logs users in and issues JWTs. This service
only verifies them: the `sub` claim is the user identity that REST calls
are scoped to and that WebSocket clients join as.
"""
