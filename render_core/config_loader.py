"""Load system_config.yml và get_config(system_config, keys). Path từ env RENDER_SYSTEM_CONFIG, base từ RENDER_CONFIG_BASE."""
from __future__ import annotations
import os
from pathlib import Path
from typing import Any

import yaml


def _load_yaml(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_config(system_config: dict, keys: list[str]) -> Any:
    """Lấy giá trị lồng nhau: get_config(cfg, ["renderer", "dpi"]) -> cfg["renderer"]["dpi"]."""
    v = system_config
    for k in keys:
        v = v.get(k) if isinstance(v, dict) else None
        if v is None:
            return None
    return v


def load_system_config() -> tuple[dict, Path]:
    """
    Load infra/system_config.yml.
    - Path file: env RENDER_SYSTEM_CONFIG, hoặc RENDER_CONFIG_BASE/infra/system_config.yml,
      hoặc <repo>/infra/system_config.yml nếu có; không có thì trả về ({}, Path('.')).
    - Base: env RENDER_CONFIG_BASE hoặc thư mục cha của infra/.
    Returns (config_dict, base_path).
    """
    config_path = os.getenv("RENDER_SYSTEM_CONFIG", "").strip()
    base_env = os.getenv("RENDER_CONFIG_BASE", "").strip()
    if not config_path and base_env:
        config_path = str(Path(base_env) / "infra" / "system_config.yml")
    if not config_path:
        default = Path(__file__).resolve().parent.parent / "infra" / "system_config.yml"
        if not default.is_file():
            return {}, Path(".")
        config_path = str(default)
    path = Path(config_path).resolve()
    if not path.is_file():
        return {}, path.parent
    cfg = _load_yaml(str(path))
    if base_env:
        base = Path(base_env).resolve()
    else:
        base = path.parent
        if path.parent.name == "infra":
            base = path.parent.parent
    return cfg, base
