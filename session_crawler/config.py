"""Crawler configuration with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class CrawlerConfig:
    """Settings shared by the crawler, the web app and the CLI.

    Timeouts are in milliseconds, matching Playwright's API.
    """

    site: str = "taobao"
    # Manual login needs a visible window.
    headless: bool = False
    timeout_ms: int = 30000
    result_timeout_ms: int = 10000
    verify_timeout_ms: int = 10000
    wait_until: str = "networkidle"
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "zh-CN"
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1920, "height": 1080})
    browser_args: list[str] = field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"]
    )
    stealth: bool = True
    session_dir: Path = PROJECT_ROOT / "data" / "sessions"
    session_ttl_days: int = 30
    db_path: Path = PROJECT_ROOT / "output" / "products.db"
    api_key: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> CrawlerConfig:
        """Build a config from ``CRAWLER_<FIELD>`` variables.

        Explicit keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"CRAWLER_{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw)
        values.update(overrides)
        return cls(**values)


def _coerce(name: str, raw: str) -> object:
    if name in {"headless", "stealth"}:
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if name in {"timeout_ms", "result_timeout_ms", "verify_timeout_ms", "session_ttl_days"}:
        return int(raw)
    if name in {"session_dir", "db_path"}:
        return Path(raw)
    if name == "viewport":
        width, _, height = raw.lower().partition("x")
        return {"width": int(width), "height": int(height)}
    if name == "browser_args":
        return [arg for arg in raw.split() if arg]
    return raw
