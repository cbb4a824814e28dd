#!/usr/bin/env python3
"""Cross-module tests for the utils layer.

This combined test suite includes:
- Import surface of src.utils
- Logging idempotency and JSON output verification
- Context push/pop semantics
- Excepthook installation
- Profiler timer (sink and DEBUG log fallback)
- Layering: utils never imports upper layers

Run with: pytest tests/test_utils_comprehensive.py -v
"""

import ast
import json
import logging
import sys
from pathlib import Path

import pytest

from src.utils import (
    color,
    compute,
    fs,
    hashing,
    logging_config,
    profiler,
    validators,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def restore_logging(monkeypatch):
    """Undo setup_logging() side effects on the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    logging_config.pop_context()
    logging.captureWarnings(False)


# ============================================================================
# BASIC IMPORT TESTS
# ============================================================================

def test_imports():
    """Test that all utils modules can be imported."""
    assert color is not None
    assert compute is not None
    assert fs is not None
    assert hashing is not None
    assert logging_config is not None
    assert profiler is not None
    assert validators is not None


def test_utils_layering():
    """No utils module imports from the engine or scripts layers."""
    utils_dir = Path(__file__).parent.parent / "src" / "utils"
    for py in utils_dir.glob("*.py"):
        tree = ast.parse(py.read_text(encoding="utf-8"))
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom) and node.module:
                assert not node.module.startswith("src.image_comparison"), py.name
                assert not node.module.startswith("scripts"), py.name


# ============================================================================
# LOGGING TESTS
# ============================================================================

def test_logging_idempotency(tmp_path, restore_logging):
    """Test logging file output and idempotency."""
    log_path = tmp_path / "test.log"

    logging_config.setup_logging(
        log_level="INFO",
        log_file=str(log_path),
        json=True,
        to_stderr=False,
        context={"app": "test"}
    )
    logger = logging_config.get_logger("utils_test")
    logger.info("hello")

    logging_config.setup_logging(
        log_level="INFO",
        log_file=str(log_path),
        json=True,
        to_stderr=False,
        context={"app": "test"}
    )
    logger.info("world")

    lines = log_path.read_text().strip().splitlines()
    assert len(lines) == 2

    rec = json.loads(lines[0])
    assert rec["msg"] == "hello"
    assert rec["lvl"] == "INFO"
    assert rec.get("app") == "test"


def test_logging_human_format_includes_context(tmp_path, restore_logging):
    """Human log lines carry key=value context and the level."""
    log_path = tmp_path / "human.log"
    logging_config.setup_logging(log_level="DEBUG", log_file=str(log_path), to_stderr=False)

    logging_config.pop_context()
    logging_config.push_context(reference="1-login", browser="chrome")
    logging_config.get_logger("utils_test").debug("compared")

    line = log_path.read_text().strip()
    assert "DEBUG" in line
    assert "reference=1-login browser=chrome" in line
    assert line.endswith("compared")


def test_push_pop_context(restore_logging):
    """pop_context removes selected keys or clears everything."""
    logging_config.pop_context()
    logging_config.push_context(a=1, b=2)
    logging_config.pop_context(["a"])
    assert logging_config._context_var.get() == {"b": 2}

    logging_config.pop_context()
    assert logging_config._context_var.get() == {}


def test_unknown_rotation_mode(tmp_path, restore_logging):
    """Bad rotation config is rejected."""
    with pytest.raises(ValueError, match="rotation mode"):
        logging_config.setup_logging(
            log_file=str(tmp_path / "r.log"), to_stderr=False, rotate={"mode": "weekly"}
        )


def test_install_excepthook(restore_logging):
    """Uncaught exceptions are routed to logging."""
    logging_config.install_excepthook()

    assert sys.excepthook is not sys.__excepthook__


# ============================================================================
# PROFILER TESTS
# ============================================================================

def test_profiler_timer():
    """Test profiler timer functionality."""
    times = []
    with profiler.timer('test_op', sink=lambda n, t: times.append((n, t))):
        sum(range(10000))

    assert len(times) == 1
    assert times[0][0] == 'test_op' and times[0][1] >= 0


def test_profiler_timer_logs_without_sink(caplog):
    """Without a sink the elapsed time is logged at DEBUG."""
    with caplog.at_level(logging.DEBUG, logger="src.utils.profiler"):
        with profiler.timer("close_mask"):
            pass

    assert any(r.getMessage().startswith("close_mask:") for r in caplog.records)


def test_profiler_timer_reports_on_exception():
    """Timing is recorded even when the body raises."""
    times = []
    with pytest.raises(KeyError):
        with profiler.timer('failing', sink=lambda n, t: times.append(t)):
            raise KeyError("boom")

    assert len(times) == 1
