# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).
"""

ENV_VARS = {
    # App / logging
    "TASKTALK_APP_NAME": "App display name (default: tasktalk).",
    "TASKTALK_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TASKTALK_CONSOLE_ENABLED": "Enable console REPL (true/false, default: true).",
    # LLM (OpenAI-compatible)
    "TASKTALK_LLM_API_KEY": "API key; LLM_API_TOKEN / OPENAI_API_KEY are accepted too. Empty => offline demo.",
    "TASKTALK_LLM_BASE_URL": "Base URL of an OpenAI-compatible endpoint (default: OpenAI).",
    "TASKTALK_LLM_MODEL": "Chat model with tool calling (default: gpt-4o-mini; LLM_MODEL also works).",
    "TASKTALK_LLM_TEMPERATURE": "Sampling temperature (default: 0.2).",
    "TASKTALK_LLM_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TASKTALK_LLM_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 60).",
    "TASKTALK_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "TASKTALK_APP_TITLE": "Optional OpenRouter metadata header title.",
    # Agent loop
    "TASKTALK_AGENT_MAX_STEPS": "Max model calls per user message (default: 6, minimum 1).",
    "TASKTALK_HISTORY_MAX_TURNS": "Past turns replayed to the model (default: 10, 0 disables).",
    # Task graph
    "TASKTALK_TASK_CODE_PREFIX": "Prefix of human-readable task codes (default: TASK => TASK-0001).",
    # Retrieval
    "TASKTALK_VECTOR_ENABLED": "Enable semantic notes/search (true/false, default: true; needs an API key).",
    "TASKTALK_EMBEDDING_MODEL": "Embedding model (default: text-embedding-3-small).",
    "TASKTALK_VECTOR_COLLECTION": "Document collection name (default: requirements).",
    # Paths (gitignored)
    "TASKTALK_DATA_DIR": "Local data directory (default: .local/tasktalk).",
    "TASKTALK_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "TASKTALK_MESSAGES_DB_PATH": "TurnStore SQLite path (default: <data_dir>/messages.sqlite3).",
    "TASKTALK_VECTORS_DB_PATH": "VectorStore SQLite path (default: <data_dir>/vectors.sqlite3).",
}
