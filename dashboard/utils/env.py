import os
import re
from typing import Optional
from dotenv import load_dotenv

# Accepts 'KEY=value', 'KEY = "value"' and the YAML-ish 'KEY: value'.
_LINE_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*[:=]\s*(?:\"([^\"]*)\"|'([^']*)'|([^#]*))")


def _parse_env_file(path: str) -> dict:
    values = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            m = _LINE_RE.match(line)
            if not m:
                continue
            val = m.group(2) or m.group(3) or m.group(4) or ""
            values[m.group(1)] = val.strip()
    return values


def ensure_env_loaded(env_path: Optional[str] = None) -> None:
    """Load .env into os.environ without overriding variables already set."""
    path = env_path or os.path.join(os.getcwd(), ".env")
    load_dotenv(path, override=False)
    if not os.path.exists(path):
        return
    # python-dotenv skips 'KEY: value' lines; pick those up here
    for key, val in _parse_env_file(path).items():
        os.environ.setdefault(key, val)


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
