API_VERSION_HEADER = "X-PromptFlow-Version"

# Shared-secret header for calls from the web tier and the scheduler
INTERNAL_API_KEY_HEADER = "X-PromptFlow-Internal-Key"

# Webhook guards
MAX_WEBHOOK_PAYLOAD_BYTES = 1024 * 1024

# Pagination
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
