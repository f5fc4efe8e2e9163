import json
import stat
from pathlib import Path

import pytest

from tests.consts import TEST_API_KEY
from vibe_check.errors import ConfigurationError
from vibe_check.models.config import DEFAULT_MODEL, OPENROUTER_BASE_URL, ScanConfig
from vibe_check.repositories.config import ConfigRepository


@pytest.fixture
def repo(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(config_file=tmp_path / ".vibe-check" / "config.json")


def test_load_without_file_returns_none(repo: ConfigRepository):
    assert not repo.exists()
    assert repo.load() is None


def test_save_then_load(repo: ConfigRepository):
    repo.save(ScanConfig(api_key=TEST_API_KEY, model="qwen/qwq-32b"))

    loaded = repo.load()

    assert loaded == ScanConfig(api_key=TEST_API_KEY, model="qwen/qwq-32b")
    assert stat.S_IMODE(repo.config_file.stat().st_mode) == 0o600
    assert json.loads(repo.config_file.read_text(encoding="utf-8")) == {
        "api_key": TEST_API_KEY,
        "model": "qwen/qwq-32b",
        "base_url": OPENROUTER_BASE_URL,
    }


def test_save_rejects_blank_key(repo: ConfigRepository):
    with pytest.raises(ConfigurationError):
        repo.save(ScanConfig(api_key="  "))
    assert not repo.exists()


def test_update_merges_changes(repo: ConfigRepository):
    repo.save(ScanConfig(api_key=TEST_API_KEY))

    updated = repo.update(model="google/gemma-3-27b-it", api_key=None)

    assert updated.api_key == TEST_API_KEY
    assert updated.model == "google/gemma-3-27b-it"
    assert repo.load() == updated


def test_delete(repo: ConfigRepository):
    repo.save(ScanConfig(api_key=TEST_API_KEY))

    assert repo.delete() is True
    assert repo.delete() is False
    assert repo.load() is None


def test_invalid_json_is_a_configuration_error(repo: ConfigRepository):
    repo.config_file.parent.mkdir(parents=True)
    repo.config_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        repo.load()


def test_legacy_camel_case_key(repo: ConfigRepository):
    repo.config_file.parent.mkdir(parents=True)
    repo.config_file.write_text(json.dumps({"apiKey": TEST_API_KEY}), encoding="utf-8")

    loaded = repo.load()

    assert loaded is not None
    assert loaded.api_key == TEST_API_KEY
    assert loaded.model == DEFAULT_MODEL


def test_environment_overrides_file(repo: ConfigRepository, monkeypatch: pytest.MonkeyPatch):
    repo.save(ScanConfig(api_key=TEST_API_KEY))
    monkeypatch.setenv("VIBE_CHECK_MODEL", "meta-llama/llama-4-maverick")

    loaded = repo.load()

    assert loaded is not None
    assert loaded.model == "meta-llama/llama-4-maverick"
    assert loaded.api_key == TEST_API_KEY


def test_environment_alone_is_enough(repo: ConfigRepository, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("VIBE_CHECK_API_KEY", "sk-or-v1-from-env")

    loaded = repo.load()

    assert loaded is not None
    assert loaded.api_key == "sk-or-v1-from-env"


def test_environment_ignored_when_disabled(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("VIBE_CHECK_API_KEY", "sk-or-v1-from-env")

    assert ConfigRepository(config_file=tmp_path / "c.json", use_env=False).load() is None


def test_masked_api_key():
    assert ScanConfig(api_key="sk-or-v1-abcdef1234").masked_api_key == "****1234"


def test_dotenv_in_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    project = tmp_path / "project"
    project.mkdir()
    (project / ".env").write_text(
        "VIBE_CHECK_API_KEY=sk-or-v1-fromdotenv\nVIBE_CHECK_MODEL=qwen/qwq-32b\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    loaded = ConfigRepository(config_file=tmp_path / "missing.json").load()

    assert loaded is not None
    assert loaded.api_key == "sk-or-v1-fromdotenv"
    assert loaded.model == "qwen/qwq-32b"


def test_process_environment_beats_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    (tmp_path / ".env").write_text("VIBE_CHECK_API_KEY=sk-or-v1-fromdotenv\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("VIBE_CHECK_API_KEY", "sk-or-v1-fromprocess")

    loaded = ConfigRepository(config_file=tmp_path / "missing.json").load()

    assert loaded is not None
    assert loaded.api_key == "sk-or-v1-fromprocess"
