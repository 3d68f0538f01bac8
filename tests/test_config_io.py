import os
from pathlib import Path

import pytest

from picture_project.foundation.config_io import find_repo_root, load_config

ENV_VAR = "TEST_PICTURE_PROJECT_CONFIG"


def test_load_config_base_only(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)
    (tmp_path / "config.yaml").write_text("a: 1\nb:\n  c: 2\n", encoding="utf-8")

    cfg, meta = load_config(config_dir=str(tmp_path), env_var=ENV_VAR)

    assert cfg == {"a": 1, "b": {"c": 2}}
    assert meta["mode"] == "base"
    assert os.path.basename(meta["paths"][0]) == "config.yaml"


def test_load_config_base_plus_local_overlay(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)
    (tmp_path / "config.yaml").write_text("a: 1\nb:\n  c: 2\n  e: [1]\n", encoding="utf-8")
    (tmp_path / "config.local.yaml").write_text("b:\n  c: 3\n  d: 4\n  e: [2, 3]\n", encoding="utf-8")

    cfg, meta = load_config(config_dir=str(tmp_path), env_var=ENV_VAR)

    assert cfg == {"a": 1, "b": {"c": 3, "d": 4, "e": [2, 3]}}
    assert meta["mode"] == "base+local"
    assert len(meta["paths"]) == 2


def test_load_config_overlay_type_mismatch_raises(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)
    (tmp_path / "config.yaml").write_text("a:\n  b: 1\n", encoding="utf-8")
    (tmp_path / "config.local.yaml").write_text("a: [1, 2]\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"Invalid config overlay merge at a"):
        load_config(config_dir=str(tmp_path), env_var=ENV_VAR)


def test_load_config_invalid_yaml_raises(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)
    (tmp_path / "config.yaml").write_text("a: [1, 2\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(config_dir=str(tmp_path), env_var=ENV_VAR)


def test_load_config_non_mapping_raises(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)
    (tmp_path / "config.yaml").write_text("- 1\n- 2\n", encoding="utf-8")

    with pytest.raises(ValueError, match="YAML mapping"):
        load_config(config_dir=str(tmp_path), env_var=ENV_VAR)


def test_env_var_selects_single_file(tmp_path, monkeypatch):
    path = tmp_path / "elsewhere.yaml"
    path.write_text("picture:\n  styles: {}\n", encoding="utf-8")
    monkeypatch.setenv(ENV_VAR, str(path))

    cfg, meta = load_config(env_var=ENV_VAR)

    assert cfg == {"picture": {"styles": {}}}
    assert meta["mode"] == "env"


def test_missing_base_config_raises(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)

    with pytest.raises(FileNotFoundError, match="Missing base config file"):
        load_config(config_dir=str(tmp_path), env_var=ENV_VAR)


def test_repo_config_is_discovered_from_subdir(monkeypatch):
    repo_root = Path(__file__).resolve().parents[1]
    monkeypatch.delenv(ENV_VAR, raising=False)
    monkeypatch.chdir(repo_root / "tests")

    cfg, meta = load_config(env_var=ENV_VAR)

    assert Path(find_repo_root()).resolve() == repo_root.resolve()
    assert Path(meta["paths"][0]).resolve() == (repo_root / "config" / "config.yaml").resolve()
    assert "Hero" in cfg["picture"]["styles"]
