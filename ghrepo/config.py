from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from ghrepo.domain.errors import ConfigError
from ghrepo.infrastructure.github_client import DEFAULT_TIMEOUT, GITHUB_API_URL, GITHUB_UPLOAD_URL


@dataclass(frozen=True)
class Settings:
    """Everything ghrepo reads from the environment."""
    github_token:   str
    api_url:        str = GITHUB_API_URL
    upload_url:     str = GITHUB_UPLOAD_URL
    base_dir:       Path = Path(".")
    http_timeout:   float = DEFAULT_TIMEOUT
    prefetch_users: tuple[str, ...] = field(default_factory=tuple)
    prefetch_orgs:  tuple[str, ...] = field(default_factory=tuple)


def _split_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Read settings from environment variables.
    Fails fast with ConfigError if the token is missing or a value is malformed.
    """
    env   = os.environ if environ is None else environ
    token = env.get("GITHUB_TOKEN")

    if not token:
        raise ConfigError("GITHUB_TOKEN environment variable is required")

    raw_timeout = env.get("GHREPO_HTTP_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
    except ValueError as exc:
        raise ConfigError(f"GHREPO_HTTP_TIMEOUT must be a number of seconds, got {raw_timeout!r}") from exc

    return Settings(
        github_token   = token,
        api_url        = env.get("GITHUB_API_URL") or GITHUB_API_URL,
        upload_url     = env.get("GITHUB_UPLOAD_URL") or GITHUB_UPLOAD_URL,
        base_dir       = Path(env.get("GHREPO_BASE_DIR") or "."),
        http_timeout   = timeout,
        prefetch_users = _split_list(env.get("GHREPO_PREFETCH_USERS")),
        prefetch_orgs  = _split_list(env.get("GHREPO_PREFETCH_ORGS")),
    )
