import os
from pathlib import Path

import yaml

POLICY_PATH = Path("config/policy.yaml")


def policy_path() -> Path:
    return Path(os.getenv("HOME_POLICY_PATH", POLICY_PATH.as_posix()))


def load_policy() -> dict:
    path = policy_path()
    if path.exists():
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return {}


def policy_section(name: str) -> dict:
    section = load_policy().get(name)
    return section if isinstance(section, dict) else {}
