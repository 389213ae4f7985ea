import logging

from utils.config import AppConfig, load_config
from utils.logging import get_logger, session_logger, setup_logging
from utils.telemetry import Telemetry


def test_defaults(monkeypatch):
    for name in ("QUESTION_SOURCE", "TICK_SECONDS", "SCORING_FAILURE_LIMIT", "MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_config()
    assert cfg.question_source == "llm"
    assert cfg.tick_seconds == 1.0
    assert cfg.scoring_failure_limit == 3
    assert cfg.max_retries == 3


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("QUESTION_SOURCE", " Sample ")
    monkeypatch.setenv("TICK_SECONDS", "0.5")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("OPENAI_KEY", "sk-legacy")
    monkeypatch.setenv("PHONE_PATTERN", r"^\d{10}$")
    cfg = load_config()
    assert cfg.question_source == "sample"
    assert cfg.tick_seconds == 0.5
    assert cfg.openai_api_key == "sk-legacy"
    assert cfg.phone_pattern == r"^\d{10}$"


def test_session_logger_prefix(caplog):
    logger = get_logger("test.session")
    with caplog.at_level(logging.INFO, logger="test.session"):
        session_logger(logger, "abc123").info("hello")
    assert "[session=abc123] hello" in caplog.text


def test_setup_logging_sets_level():
    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    setup_logging("INFO")


def test_telemetry():
    t = Telemetry()
    t.incr("auto_submits")
    t.incr("auto_submits")
    with t.timer("scoring_ms"):
        pass
    t.observe_ms("scoring_ms", 10.0)
    summary = t.summary()
    assert summary["counters"] == {"auto_submits": 2}
    assert summary["timings"]["scoring_ms"]["count"] == 2.0
    assert summary["timings"]["scoring_ms"]["max_ms"] >= 10.0
    assert AppConfig().scoring_failure_limit == 3
