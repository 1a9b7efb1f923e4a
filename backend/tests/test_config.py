"""Tests for environment-driven settings"""

from fijian_rag.config import DEFAULT_EMBEDDING_MODEL_ID, Settings, get_settings


def test_defaults_without_environment(monkeypatch):
    for name in ("EMBEDDING_MODEL_ID", "RETRIEVAL_K", "OPENSEARCH_INDEX", "OCR_MAX_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.embedding_model_id == DEFAULT_EMBEDDING_MODEL_ID
    assert settings.retrieval_k == 5
    assert settings.opensearch_index == "translations"
    assert settings.ocr_max_attempts == 60


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "ap-southeast-2")
    monkeypatch.setenv("OPENSEARCH_INDEX", "fijian-dictionary")
    monkeypatch.setenv("OCR_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("EMBEDDING_DIMENSION", "")

    settings = Settings.from_env()

    assert settings.aws_region == "ap-southeast-2"
    assert settings.opensearch_index == "fijian-dictionary"
    assert settings.ocr_poll_interval == 0.5
    assert settings.embedding_dimension == 1536


def test_boto_config_bounds_retries(monkeypatch):
    monkeypatch.setenv("AWS_MAX_ATTEMPTS", "5")

    config = Settings.from_env().boto_config()

    assert config.retries == {"max_attempts": 5, "mode": "standard"}


def test_settings_are_cached(monkeypatch):
    monkeypatch.setenv("RETRIEVAL_K", "9")
    first = get_settings()
    monkeypatch.setenv("RETRIEVAL_K", "3")

    assert get_settings() is first
    assert get_settings().retrieval_k == 9
