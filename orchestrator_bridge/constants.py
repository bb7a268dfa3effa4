"""Constants for the orchestrator bridge.

Single source of truth for the timeouts, event names, endpoint paths and
sampling parameters shared by the bridge, the LLM client and the agent
executor.
"""

# ---------------------------------------------------------------------------
# Timeouts (seconds)
# ---------------------------------------------------------------------------
ASSET_LOAD_TIMEOUT_SECONDS = 10.0
CURSOR_FILES_TIMEOUT_SECONDS = 5.0
STATUS_PROBE_TIMEOUT_SECONDS = 2.0
CONFIG_STORE_TIMEOUT_SECONDS = 5.0
LLM_REQUEST_TIMEOUT_SECONDS = 120.0
AGENT_LLM_TIMEOUT_SECONDS = 60.0

# ---------------------------------------------------------------------------
# Realtime channel
# ---------------------------------------------------------------------------
WS_RECONNECT_DELAY_SECONDS = 5.0
WS_CONNECT_WAIT_SECONDS = 3.0

# Ready-state numbers reported by get_connection_status()
READY_STATE_CONNECTING = 0
READY_STATE_OPEN = 1
READY_STATE_CLOSING = 2
READY_STATE_CLOSED = 3

# ---------------------------------------------------------------------------
# Outbound command types
# ---------------------------------------------------------------------------
MSG_GET_ASSET = "GET_ASSET"
MSG_GET_CURSOR_FILES = "GET_CURSOR_FILES"
MSG_EXECUTE_TRIGGER = "EXECUTE_TRIGGER"
MSG_OPEN_FILE = "OPEN_FILE_IN_EDITOR"
MSG_PING = "ping"

# ---------------------------------------------------------------------------
# Inbound event names
# ---------------------------------------------------------------------------
EVENT_ASSET_RESULT = "ASSET_RESULT"
EVENT_ASSET_ERROR = "ASSET_ERROR"
EVENT_CURSOR_FILES_CHANGED = "cursor:files_changed"
EVENT_AGENT_OUTPUT = "AGENT_OUTPUT"

# ---------------------------------------------------------------------------
# HTTP endpoints (Transport A)
# ---------------------------------------------------------------------------
PATH_LLM_CHAT = "/api/llm/chat"
PATH_LLM_STATUS = "/api/llm/status"
PATH_STORE_GET = "/api/orchestrator/get"
PATH_STORE_KEYS = "/api/orchestrator/keys"
PATH_TEMPLATE = "/api/templates/{name}"
PATH_CURSOR_FILES = "/api/cursor/changed-files"

# ---------------------------------------------------------------------------
# Agent execution
# ---------------------------------------------------------------------------
AGENT_TEMPERATURE = 0.3  # lower than interactive chat
AGENT_MAX_TOKENS = 500  # tuned for low-resource runtimes
REASONING_CAPABILITY = "reasoning"
GLOBAL_LLM_SETTINGS_KEY = "globalLLMSettings"
DEFAULT_USER_INSTRUCTION = (
    "Process the provided context and respond according to your goals and role."
)
NO_RESPONSE_MESSAGE = "Agent executed but no response generated."
RESPONSE_SEPARATOR = "\n\n---\n\n"
DEFAULT_APPEND_MODE = "append"  # append, replace
