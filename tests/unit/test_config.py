import json
import os

import pytest

from autotester.config import AutotesterPaths, SessionConfig, build_paths, load_session_config
from autotester.domain import (
    FailureEntry,
    IterationFailureContext,
    OtherContext,
    Session,
    UnsupportedCommandContext,
    failure_context_from_dict,
)
from autotester.orchestrator import load_checkpoint, save_checkpoint


def test_session_config_defaults():
    config = SessionConfig()
    assert config.website_count == 10
    assert config.use_real_images is False
    assert config.random_industries is True
    assert config.max_retries == 3
    assert config.timeout_per_website == 300.0
    assert config.quality_threshold == 7.5


def test_load_config_accepts_camel_case(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"websiteCount": 3, "qualityThreshold": 8.0,
                                "max_retries": 1, "unknownKey": True}))

    config = load_session_config(str(path))

    assert config.website_count == 3
    assert config.quality_threshold == 8.0
    assert config.max_retries == 1


def test_load_config_without_path():
    assert load_session_config(None) == SessionConfig()


def test_paths_layout(tmp_path):
    paths = AutotesterPaths(root=str(tmp_path))
    paths.ensure()

    assert paths.checkpoint == os.path.join(str(tmp_path), ".autotester", "checkpoint.json")
    assert os.path.isdir(paths.report_dir)
    assert os.path.isdir(paths.knowledge_dir)
    assert build_paths(str(tmp_path)).pid_file == paths.pid_file


def test_failure_context_variants():
    assert isinstance(failure_context_from_dict(IterationFailureContext(2, "law-firm").to_dict()),
                      IterationFailureContext)
    unsupported = UnsupportedCommandContext("c1", "teleport", "beam", "Unknown command category: teleport")
    assert failure_context_from_dict(unsupported.to_dict()) == unsupported

    other = failure_context_from_dict({"kind": "command", "surprise": 1})
    assert isinstance(other, OtherContext)
    assert other.data == {"surprise": 1}


def test_checkpoint_restores_session(tmp_path):
    session = Session(id="session_1", target_count=3, current_index=2, status="running")
    session.failure_log.append(FailureEntry(
        id="f1", website_id="w1", step="attempt", error_type="iteration_error",
        error_message="boom", context=IterationFailureContext(1),
    ))
    path = str(tmp_path / "checkpoint.json")

    assert save_checkpoint(path, session, SessionConfig(website_count=3)) is True
    restored = load_checkpoint(path)

    assert restored.id == "session_1"
    assert restored.current_index == 2
    assert restored.failure_log[0].context == IterationFailureContext(1)


@pytest.mark.parametrize("content", ["", "{broken", json.dumps({"session": {"no_id": True}})])
def test_bad_checkpoint_returns_none(tmp_path, content):
    path = tmp_path / "checkpoint.json"
    path.write_text(content)
    assert load_checkpoint(str(path)) is None


def test_missing_checkpoint_returns_none(tmp_path):
    assert load_checkpoint(str(tmp_path / "nope.json")) is None
