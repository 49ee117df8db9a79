"""Runtime settings read from the process environment."""
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import appdirs

APP_NAME = "mcp-env-provisioner"
DEVELOPMENT = "development"

DEFAULT_LOCK_RETRIES = 10
DEFAULT_REFRESH_INTERVAL = 6 * 60 * 60


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Provisioner configuration"""
    environment: str
    helper_path: Path
    lock_dir: Path
    lock_retries: int
    refresh_interval: int
    home: Path
    log_level: str
    interpreter: str = sys.executable

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        cache_dir = Path(appdirs.user_cache_dir(APP_NAME))
        return cls(
            environment=env.get("PROVISIONER_ENV", "production"),
            helper_path=Path(env.get("PROVISIONER_HELPER") or Path.cwd() / "sudoutil.py"),
            lock_dir=Path(env.get("PROVISIONER_LOCK_DIR") or cache_dir / "locks"),
            lock_retries=_int_setting(env, "PROVISIONER_LOCK_RETRIES", DEFAULT_LOCK_RETRIES),
            refresh_interval=_int_setting(
                env, "PROVISIONER_REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL
            ),
            home=Path(env.get("PROVISIONER_HOME") or Path.home()),
            log_level=env.get("PROVISIONER_LOG_LEVEL", "INFO").upper(),
        )
