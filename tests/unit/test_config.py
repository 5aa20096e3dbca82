"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError as SettingsError

from chatseq.config import Config

URLS = {"database_url": "mongodb://localhost:27017/chatseq", "redis_url": "redis://localhost:6379/0"}


def test_defaults():
    config = Config(_env_file=None, **URLS)

    assert config.allocation_max_attempts == 5
    assert config.rebuild_batch_size == 500


@pytest.mark.parametrize(
    "field", ["allocation_max_attempts", "reconcile_sample_size", "monitor_sample_size", "rebuild_batch_size"]
)
def test_sizes_must_be_positive(field):
    with pytest.raises(SettingsError):
        Config(_env_file=None, **URLS, **{field: 0})


def test_sample_size_from_environment_is_validated(monkeypatch):
    monkeypatch.setenv("CHATSEQ_RECONCILE_SAMPLE_SIZE", "0")

    with pytest.raises(SettingsError):
        Config(_env_file=None, **URLS)
