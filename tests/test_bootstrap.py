# tests/test_bootstrap.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from tasktalk.cli.bootstrap import create_initial_state
from tasktalk.core.chat import handle_user_message
from tasktalk.llm.offline import OfflineChatModel


def test_state_without_api_key_runs_offline(tmp_path: Path) -> None:
    data = tmp_path / "data"
    settings = SimpleNamespace(
        app_name="tasktalk-test",
        llm_api_key=None,
        llm_base_url=None,
        llm_model="gpt-4o-mini",
        llm_temperature=0.2,
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
        extra_headers={},
        agent_max_steps=3,
        history_max_turns=5,
        task_code_prefix="REQ",
        vector_enabled=True,
        embedding_model="text-embedding-3-small",
        vector_collection="requirements",
        data_dir=data,
        tasks_db_path=data / "tasks.sqlite3",
        messages_db_path=data / "messages.sqlite3",
        vectors_db_path=data / "vectors.sqlite3",
    )

    state = create_initial_state(settings=settings)

    assert isinstance(state.llm, OfflineChatModel)
    assert state.vector_store.enabled is False
    assert state.tools.names() == ["list_tasks", "create_task", "update_task", "delete_task"]
    assert state.agent.max_steps == 3
    assert state.task_store.create_task(type="epic", title="E", description="d").code == "REQ-0001"

    reply = handle_user_message(state, "hello")
    assert reply.endswith("You said: hello")
    assert state.turn_store.recent_turns(1)[0].assistant_reply == reply
