"""Tests for TongConfig."""

from __future__ import annotations

import dataclasses

import pytest

from tong.config import DEFAULT_MULTIPART_MEMORY, TongConfig
from tong.exceptions import InvalidArgument


class TestDefaults:
    def test_multipart_memory_is_32_mib(self) -> None:
        assert TongConfig().multipart_memory == DEFAULT_MULTIPART_MEMORY == 32 << 20

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            TongConfig().pool_size = 1  # type: ignore[misc]


class TestFromEnv:
    def test_no_env_gives_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("POOL_SIZE", "MULTIPART_MEMORY", "LOG_JSON", "LOG_LEVEL"):
            monkeypatch.delenv(f"TONG_{name}", raising=False)
        assert TongConfig.from_env() == TongConfig()

    def test_reads_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TONG_POOL_SIZE", "8")
        monkeypatch.setenv("TONG_JSON_CHUNK_SIZE", "1024")
        monkeypatch.setenv("TONG_LOG_JSON", "true")
        monkeypatch.setenv("TONG_LOG_LEVEL", "debug")
        config = TongConfig.from_env()
        assert config.pool_size == 8
        assert config.json_chunk_size == 1024
        assert config.log_json is True
        assert config.log_level == "DEBUG"

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_MAX_FILES", "3")
        assert TongConfig.from_env(prefix="APP_").max_files == 3

    @pytest.mark.parametrize("raw", ["many", "0", "-4"])
    def test_rejects_bad_integers(
        self, monkeypatch: pytest.MonkeyPatch, raw: str
    ) -> None:
        monkeypatch.setenv("TONG_POOL_SIZE", raw)
        with pytest.raises(InvalidArgument):
            TongConfig.from_env()
