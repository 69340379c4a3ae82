"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.
"""

# =============================================================================
# Instagram Graph API
# =============================================================================

# Instagram Graph API version
INSTAGRAM_GRAPH_API_VERSION = "v23.0"

# Host serving both the versioned Graph API and the unversioned token endpoints
INSTAGRAM_GRAPH_HOST = "https://graph.instagram.com"

INSTAGRAM_GRAPH_API_BASE_URL = f"{INSTAGRAM_GRAPH_HOST}/{INSTAGRAM_GRAPH_API_VERSION}"

# Token introspection endpoint (unversioned)
INSTAGRAM_DEBUG_TOKEN_URL = f"{INSTAGRAM_GRAPH_HOST}/debug_token"

# Long-lived token refresh endpoint (unversioned)
INSTAGRAM_REFRESH_TOKEN_URL = f"{INSTAGRAM_GRAPH_HOST}/refresh_access_token"

# Grant type for renewing a long-lived Instagram token
INSTAGRAM_REFRESH_GRANT_TYPE = "ig_refresh_token"

# Timeout for Instagram Graph API calls (seconds)
INSTAGRAM_API_TIMEOUT_SECONDS = 10.0

# Fields requested when auto-discovering the business account
INSTAGRAM_ACCOUNT_FIELDS = "id,name,account_type,media_count,user_id,username"

# =============================================================================
# Token Lifecycle
# =============================================================================

SECONDS_PER_DAY = 24 * 60 * 60

# Refresh a token when it expires within this many days
DEFAULT_REFRESH_THRESHOLD_DAYS = 7

# Cache key used when a single credential is configured
DEFAULT_CREDENTIAL_ID = "default"

# =============================================================================
# Webhooks
# =============================================================================

# Header carrying the HMAC-SHA256 signature of a webhook delivery
WEBHOOK_SIGNATURE_HEADER = "x-hub-signature-256"

# Prefix Meta puts in front of the hex digest
WEBHOOK_SIGNATURE_PREFIX = "sha256="

WEBHOOK_SUBSCRIBE_MODE = "subscribe"

# =============================================================================
# Story Publishing
# =============================================================================

# Delay between container status checks (seconds)
STORY_POLL_INTERVAL_SECONDS = 2.0

# 30 attempts x 2 seconds = 60 seconds max
STORY_POLL_MAX_ATTEMPTS = 30
