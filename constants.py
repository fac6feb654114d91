import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_IN = int(os.getenv("JWT_EXPIRES_IN", 86400))

# Opaque RTM token issuer: GET {TOKEN_SERVICE_URL}/rtm/{channel}/{TOKEN_SERVICE_SECRET}
TOKEN_SERVICE_URL = os.getenv("TOKEN_SERVICE_URL", "https://prepintech-rtc.herokuapp.com")
TOKEN_SERVICE_SECRET = os.getenv("TOKEN_SERVICE_SECRET", os.getenv("GO_SECRET", ""))
TOKEN_SERVICE_TIMEOUT = float(os.getenv("TOKEN_SERVICE_TIMEOUT", 10))

# Socket connections are not JWT gated unless this is turned on
REALTIME_REQUIRE_AUTH = os.getenv("REALTIME_REQUIRE_AUTH", "false").lower() in ("1", "true", "yes")
REALTIME_OUTBOX_SIZE = int(os.getenv("REALTIME_OUTBOX_SIZE", 256))

DEFAULT_DOCUMENT_DATA = os.getenv("DEFAULT_DOCUMENT_DATA", "")
MAX_DOCUMENT_ID_LENGTH = int(os.getenv("MAX_DOCUMENT_ID_LENGTH", 256))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
