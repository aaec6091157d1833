"""Configuration loading for the catalog client and front-ends."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path

import keyring


SERVICE_NAME = "modb-tmdb"
KEY_NAME = "api_key"
ENV_VAR = "TMDB_API_KEY"

DEFAULT_CONFIG_PATH = Path("config/modb.json")

V3_API_KEY = "v3 API key"
V4_ACCESS_TOKEN = "v4 read access token"
_V3_KEY_RE = re.compile(r"^[0-9a-fA-F]{32}$")


def credential_kind(credential: str) -> str | None:
    """Name the TMDB credential type, or ``None`` if it matches neither.

    v4 read access tokens are JWTs (three dot-separated parts); v3 API keys
    are 32 hex characters.
    """
    if credential.count(".") == 2:
        return V4_ACCESS_TOKEN
    if _V3_KEY_RE.match(credential):
        return V3_API_KEY
    return None


def find_api_key() -> tuple[str | None, str | None]:
    """Return ``(credential, source)`` where source is ``keyring`` or ``environment``."""
    api_key = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if api_key:
        return api_key, "keyring"

    api_key = os.environ.get(ENV_VAR)
    if api_key:
        return api_key, "environment"
    return None, None


def get_api_key() -> str:
    """Get the TMDB credential: system keyring first, then TMDB_API_KEY.

    Either a v3 API key or a v4 read access token is accepted; the client
    tells them apart.

    Raises:
        RuntimeError: If no key found anywhere, with actionable instructions.
    """
    api_key, _ = find_api_key()
    if api_key:
        return api_key

    raise RuntimeError(
        "TMDB API key not found.\n"
        "Set it with: modb config set-api-key YOUR_KEY\n"
        f"Or: export {ENV_VAR}=your-key"
    )


@dataclass
class ClientConfig:
    """Settings shared by the catalog client, the TUI and the CLI."""

    api_key: str | None = None
    base_url: str = "https://api.themoviedb.org/3"
    language: str = "en-US"
    watch_region: str = "US"
    timeout_seconds: float = 10.0
    search_debounce_seconds: float = 0.5
    search_result_cap: int = 10
    log_dir: str = "logs"

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.search_debounce_seconds < 0:
            raise ValueError(
                f"search_debounce_seconds must be >= 0, got {self.search_debounce_seconds}"
            )
        if self.search_result_cap < 1:
            raise ValueError(
                f"search_result_cap must be >= 1, got {self.search_result_cap}"
            )
        self.base_url = self.base_url.rstrip("/")


def load_client_config(
    config_path: Path | None = None,
    *,
    require_api_key: bool = True,
) -> ClientConfig:
    """Load client configuration from JSON, falling back to defaults.

    Reads ``config/modb.json`` when *config_path* is ``None``; a missing
    file yields the defaults. Unknown keys are ignored. When the file has
    no ``api_key`` it is resolved through :func:`get_api_key`.

    Args:
        config_path: Optional explicit path to the JSON file.
        require_api_key: Raise when no key can be found (default).

    Returns:
        ClientConfig populated from file + keyring/environment.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a JSON object")

    field_names = {f.name for f in fields(ClientConfig)}
    kwargs = {k: v for k, v in data.items() if k in field_names}
    config = ClientConfig(**kwargs)

    if not config.api_key:
        try:
            config.api_key = get_api_key()
        except RuntimeError:
            if require_api_key:
                raise
    return config
