from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "PICTURE_PROJECT_CONFIG"
LOCAL_OVERLAY_NAME = "config.local.yaml"


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    for candidate in (start_path, *start_path.parents):
        if (candidate / "pyproject.toml").is_file() or (candidate / ".git").exists():
            return str(candidate)

    raise FileNotFoundError(
        f"Cannot locate repo root: searched from {start_path} for pyproject.toml, .git"
    )


def read_yaml_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def merge_overlay(base: Any, overlay: Any, *, path: str = "") -> Any:
    """Deep-merge ``overlay`` onto ``base``; mappings merge, everything else replaces."""

    if base is None or overlay is None:
        return overlay

    if isinstance(base, Mapping):
        if not isinstance(overlay, Mapping):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is mapping but overlay is {type(overlay).__name__}"
            )
        merged: dict[str, Any] = dict(base)
        for key, value in overlay.items():
            child = f"{path}.{key}" if path else str(key)
            merged[key] = merge_overlay(base[key], value, path=child) if key in base else value
        return merged

    if isinstance(overlay, Mapping):
        raise ValueError(
            f"Invalid config overlay merge at {path}: base is {type(base).__name__} but overlay is mapping"
        )
    return overlay


def load_config(
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = CONFIG_ENV_VAR,
    config_dir: str = "config",
    config_name: str = "config.yaml",
    start_dir: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Load the picture configuration.

    An explicit ``config_path`` (or the ``env_var`` environment variable) loads
    that single file. Otherwise ``<repo root>/<config_dir>/<config_name>`` is
    loaded and ``config.local.yaml`` next to it, if present, is merged on top.

    Returns ``(cfg, meta)`` where meta records which files were read.
    """

    explicit = None
    if config_path is not None:
        explicit = str(config_path).strip() or None
    elif env_var:
        explicit = os.environ.get(env_var, "").strip() or None

    if explicit:
        resolved = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit)))
        cfg = read_yaml_mapping(resolved)
        mode = "explicit" if config_path is not None else "env"
        return cfg, {"mode": mode, "paths": [resolved], "env_var": env_var, "repo_root": None}

    if os.path.isabs(config_dir):
        directory, repo_root = config_dir, None
    else:
        repo_root = find_repo_root(start_dir)
        directory = os.path.join(repo_root, config_dir)

    base_path = os.path.join(directory, config_name)
    if not os.path.exists(base_path):
        raise FileNotFoundError(f"Missing base config file: {base_path}")

    cfg = read_yaml_mapping(base_path)
    paths = [os.path.abspath(base_path)]
    mode = "base"

    overlay_path = os.path.join(directory, LOCAL_OVERLAY_NAME)
    if os.path.exists(overlay_path):
        cfg = merge_overlay(cfg, read_yaml_mapping(overlay_path))
        paths.append(os.path.abspath(overlay_path))
        mode = "base+local"

    return cfg, {"mode": mode, "paths": paths, "env_var": env_var, "repo_root": repo_root}
