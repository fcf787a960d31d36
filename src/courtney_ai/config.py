"""
Widget configuration: defaults, then ~/.courtney/config.json, then environment.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

from courtney_ai.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".courtney" / "config.json"

ENV_VARS = {
    "public_key": "VAPI_PUBLIC_KEY",
    "assistant_id": "VAPI_ASSISTANT_ID",
    "private_key": "VAPI_PRIVATE_KEY",
    "chat_url": "COURTNEY_CHAT_URL",
    "realtime_url": "COURTNEY_REALTIME_URL",
    "upstream_chat_url": "VAPI_CHAT_URL",
    "feedback_url": "COURTNEY_FEEDBACK_URL",
    "request_timeout": "COURTNEY_REQUEST_TIMEOUT",
}


class WidgetConfig(BaseModel):
    public_key: str = ""
    assistant_id: str = ""
    private_key: Optional[str] = None
    chat_url: str = "http://localhost:3000/api/chat"
    realtime_url: str = "https://api.vapi.ai"
    upstream_chat_url: str = "https://api.vapi.ai/chat"
    feedback_url: Optional[str] = None
    request_timeout: float = 30.0

    def model_post_init(self, __context: Any) -> None:
        if not self.public_key or not self.assistant_id:
            logger.warning("Missing credentials. Set VAPI_PUBLIC_KEY and VAPI_ASSISTANT_ID")

    @classmethod
    def load(cls, config_file: Optional[Path] = None, environ: Optional[dict[str, str]] = None) -> "WidgetConfig":
        values: dict[str, Any] = {
            k: v for k, v in load_config_file(config_file).items() if k in cls.model_fields
        }
        env = os.environ if environ is None else environ
        for field, var in ENV_VARS.items():
            if env.get(var):
                values[field] = env[var]
        return cls.model_validate(values)

    def require_public(self) -> "WidgetConfig":
        """Raise ConfigurationError unless the public key and assistant id are set."""
        missing = [ENV_VARS[f] for f in ("public_key", "assistant_id") if not getattr(self, f)]
        if missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")
        return self

    def public_view(self) -> dict[str, Any]:
        """Settings safe to print; keys are masked."""
        data = self.model_dump()
        for key in ("public_key", "private_key"):
            data[key] = "***" if data[key] else "missing"
        return data


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    try:
        return json.loads((path or CONFIG_FILE).read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def save_config_file(cfg: dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg, indent=2))
