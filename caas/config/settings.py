"""Settings loader with YAML system catalog, environment and Docker secrets integration."""
from __future__ import annotations
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from caas.core.cordys.saml import Credentials

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = ("caas.yaml", "~/config/caas/caas.yaml")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            logger.info("[settings] Loaded %s from environment (fallback)", env_var)
            return secret_value

    return None


def _env_slug(name: str) -> str:
    """Turn a system name into an environment variable fragment (dev-1 -> DEV_1)."""
    return re.sub(r"[^A-Za-z0-9]", "_", name).upper()


@dataclass
class SystemConfig:
    """Connection settings for one Cordys system."""
    name: str
    gateway_url: str
    ldap_root: str
    username: str
    password: str = field(default="", repr=False)
    verify_tls: bool = True
    timeout: int = 30
    system_org: str = "system"

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.username, self.password)


@dataclass
class AppConfig:
    """Application configuration container."""
    default_system: str
    systems: dict[str, SystemConfig] = field(default_factory=dict)
    log_level: str = "INFO"
    config_file: Optional[Path] = None

    def get_system(self, name: Optional[str] = None) -> SystemConfig:
        """Return the named system, or the default one.

        Raises:
            ValueError: If the system is not configured
        """
        key = name or self.default_system
        try:
            return self.systems[key]
        except KeyError:
            known = ", ".join(sorted(self.systems)) or "none"
            raise ValueError(f"Unknown system '{key}' (configured: {known})") from None

    def credentials(self) -> dict[str, Credentials]:
        return {name: system.credentials for name, system in self.systems.items()}


def _find_config_file(explicit: Optional[str]) -> Optional[Path]:
    candidates = [explicit] if explicit else [os.environ.get("CAAS_CONFIG"), *DEFAULT_CONFIG_FILES]
    for candidate in candidates:
        if not candidate:
            continue
        path = Path(candidate).expanduser()
        if path.is_file():
            return path
    if explicit:
        raise RuntimeError(f"Configuration file {explicit} not found")
    return None


def _build_system(name: str, raw: dict[str, Any]) -> SystemConfig:
    missing = [key for key in ("gateway_url", "ldap_root", "username") if not raw.get(key)]
    if missing:
        raise RuntimeError(f"System '{name}' is missing required setting(s): {', '.join(missing)}")

    slug = _env_slug(name)
    password = _load_secret_from_file(f"caas_{slug.lower()}_password", f"CAAS_{slug}_PASSWORD")
    if not password:
        password = raw.get("password") or ""
    if not password:
        raise RuntimeError(
            f"Password for system '{name}' not found. "
            f"Provide /run/secrets/caas_{slug.lower()}_password, CAAS_{slug}_PASSWORD or 'password' in the config file."
        )

    return SystemConfig(
        name=name,
        gateway_url=str(raw["gateway_url"]),
        ldap_root=str(raw["ldap_root"]),
        username=str(raw["username"]),
        password=password,
        verify_tls=bool(raw.get("verify_tls", True)),
        timeout=int(raw.get("timeout", 30)),
        system_org=str(raw.get("system_org", "system")),
    )


def load_settings(config_file: Optional[str] = None) -> AppConfig:
    """Load settings from the YAML system catalog, environment and /run/secrets.

    Args:
        config_file: Explicit path; otherwise CAAS_CONFIG, ./caas.yaml, ~/config/caas/caas.yaml

    Raises:
        RuntimeError: If the explicit file is missing or a system is incomplete
    """
    path = _find_config_file(config_file)
    data: dict[str, Any] = {}
    if path is None:
        logger.warning("[settings] No configuration file found; no systems configured")
    else:
        with path.open(encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise RuntimeError(f"Configuration file {path} must contain a mapping")

    systems = {
        str(name): _build_system(str(name), raw or {})
        for name, raw in (data.get("systems") or {}).items()
    }

    default_system = os.environ.get("CAAS_DEFAULT_SYSTEM") or data.get("default_system") or next(iter(systems), "")
    if default_system and systems and default_system not in systems:
        raise RuntimeError(f"Default system '{default_system}' is not configured")

    log_level = (os.environ.get("CAAS_LOG_LEVEL") or data.get("log_level") or "INFO").upper()

    logger.info("[settings] Systems=%s; default=%s", ",".join(systems) or "-", default_system or "-")

    return AppConfig(
        default_system=default_system,
        systems=systems,
        log_level=log_level,
        config_file=path,
    )
