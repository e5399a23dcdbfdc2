# src/tasktalk/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- The agent step bound is a first-class setting, always finite and >= 1.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKTALK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    console_enabled: bool

    # ---- LLM (OpenAI-compatible) ----
    llm_api_key: str | None
    llm_base_url: str | None
    llm_model: str
    llm_temperature: float
    llm_connect_timeout: float
    llm_read_timeout: float
    extra_headers: dict[str, str]

    # ---- Agent loop ----
    agent_max_steps: int
    history_max_turns: int

    # ---- Task graph ----
    task_code_prefix: str

    # ---- Retrieval ----
    vector_enabled: bool
    embedding_model: str
    vector_collection: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    messages_db_path: Path
    vectors_db_path: Path

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "tasktalk")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "LLM_API_TOKEN", "OPENAI_API_KEY", default=None)
        llm_base_url = _first_env(_k("LLM_BASE_URL"), "OPENAI_BASE_URL", default=None)
        llm_model = _first_env(_k("LLM_MODEL"), "LLM_MODEL", default="gpt-4o-mini") or "gpt-4o-mini"
        llm_temperature = _env_float(_k("LLM_TEMPERATURE"), 0.2)

        # keep read >= connect as a sane baseline
        llm_connect_timeout = max(0.1, _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0))
        llm_read_timeout = max(llm_connect_timeout, _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 60.0))

        extra_headers: dict[str, str] = {}
        referer = _env(_k("HTTP_REFERER"), "").strip()
        if referer:
            extra_headers["HTTP-Referer"] = referer
            extra_headers["X-Title"] = _env(_k("APP_TITLE"), app_name)

        agent_max_steps = max(1, _env_int(_k("AGENT_MAX_STEPS"), 6))
        history_max_turns = max(0, _env_int(_k("HISTORY_MAX_TURNS"), 10))

        task_code_prefix = (_env(_k("TASK_CODE_PREFIX"), "TASK").strip() or "TASK").upper()

        vector_enabled = _env_bool(_k("VECTOR_ENABLED"), True)
        embedding_model = _env(_k("EMBEDDING_MODEL"), "text-embedding-3-small")
        vector_collection = _env(_k("VECTOR_COLLECTION"), "requirements").strip() or "requirements"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasktalk"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        messages_db_path = _env_path(_k("MESSAGES_DB_PATH"), data_dir / "messages.sqlite3")
        vectors_db_path = _env_path(_k("VECTORS_DB_PATH"), data_dir / "vectors.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_model=llm_model,
            llm_temperature=llm_temperature,
            llm_connect_timeout=llm_connect_timeout,
            llm_read_timeout=llm_read_timeout,
            extra_headers=extra_headers,
            agent_max_steps=agent_max_steps,
            history_max_turns=history_max_turns,
            task_code_prefix=task_code_prefix,
            vector_enabled=vector_enabled,
            embedding_model=embedding_model,
            vector_collection=vector_collection,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            messages_db_path=messages_db_path,
            vectors_db_path=vectors_db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
