"""Wire frame type constants.

Learn: Centralizing frame types as constants prevents typos and makes it
easy to discover the whole realtime protocol in one place. The camelCase
names are what browser clients already listen for, so they are part of
the wire contract and must not be renamed.
"""

# ─── Inbound (client → server) ───────────────────────────

JOIN = "join"
CALL_USER = "callUser"
ANSWER_CALL = "answerCall"
END_CALL = "endCall"
PING = "ping"

# ─── Outbound (server → client) ──────────────────────────

NEW_NOTIFICATION = "newNotification"
INCOMING_CALL = "callUser"
CALL_ACCEPTED = "callAccepted"
CALL_ENDED = "callEnded"
PONG = "pong"
ERROR = "error"

# ─── Call-ended reasons (synthesized by the server) ──────

END_REASON_DISCONNECT = "disconnect"
END_REASON_TIMEOUT = "timeout"
