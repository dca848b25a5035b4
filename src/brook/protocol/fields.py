"""Protocol constants.

Keep these in one place to avoid stringly-typed frame handling. Every frame
is a JSON object; its ``type`` field is one of the values below.
"""

TYPE = "type"

# Handshake
AUTH = "auth"
AUTH_REQUIRED = "auth_required"
AUTH_SUCCESS = "auth_success"
AUTH_TIMEOUT = "auth_timeout"
CONNECTED = "connected"
ERROR = "error"

# Liveness, in both directions
HEARTBEAT = "heartbeat"

# Channel traffic
SUBSCRIBE = "subscribe"
SUBSCRIBED = "subscribed"
UNSUBSCRIBE = "unsubscribe"
UNSUBSCRIBED = "unsubscribed"
PUBLISH = "publish"
PUBLISHED = "published"
MESSAGE = "message"

# The error text the server uses for a rejected credential.
INVALID_API_KEY = "Invalid API key"
