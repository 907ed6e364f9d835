"""
Config loading for walletlens.

Sources (in precedence order, highest first):
  1. Environment variables (WALLETLENS_*)
  2. ~/.walletlens/config.toml
  3. Built-in defaults

Usage:
    from walletlens.config import load_config
    config = load_config()
    print(config.providers.enabled)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import toml

from walletlens.exceptions import ConfigInvalidError
from walletlens.ratelimit import DEFAULT_LIMITS, DEFAULT_WINDOW_SECONDS

# Default config directory and file
DEFAULT_CONFIG_DIR = Path.home() / ".walletlens"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

# Address providers, in merge order (first occurrence of a tx hash wins)
KNOWN_PROVIDERS = ("blockchain.info", "blockcypher", "blockstream", "blockchair")

# Environment variable → config key mapping
# Format: (env_var_name, dotted_config_path, type_converter)
_ENV_OVERRIDES: list[tuple[str, str, type]] = [
    ("WALLETLENS_BLOCKCYPHER_TOKEN", "api.blockcypher_token", str),
    ("WALLETLENS_BLOCKCHAIR_KEY", "api.blockchair_key", str),
    ("WALLETLENS_PROVIDER_TIMEOUT", "providers.timeout_seconds", float),
    ("WALLETLENS_CACHE_TTL", "cache.ttl_seconds", float),
    ("WALLETLENS_OUTPUT_FORMAT", "output.default_format", str),
    ("WALLETLENS_LOG_LEVEL", "logging.level", str),
]

VALID_FORMATS = {"json", "table"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class APIConfig:
    """Optional provider credentials. Every provider works without one."""

    blockcypher_token: str = ""
    blockchair_key: str = ""


@dataclass
class ProvidersConfig:
    """Which providers to query and how long to wait for them."""

    enabled: list[str] = field(default_factory=lambda: list(KNOWN_PROVIDERS))
    timeout_seconds: float = 10.0           # per-adapter deadline; 0 = wait forever
    request_timeout_seconds: float = 30.0   # httpx timeout per HTTP request
    price_lookup: bool = True


@dataclass
class RateLimitConfig:
    """Per-provider request budgets."""

    limits: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    window_seconds: float = DEFAULT_WINDOW_SECONDS


@dataclass
class CacheConfig:
    """In-memory response cache."""

    ttl_seconds: float = 300.0
    sweep_interval_seconds: float = 600.0
    max_entries: int = 0                    # 0 = unbounded


@dataclass
class OutputConfig:
    """Output formatting defaults."""

    default_format: str = "json"            # json | table
    color: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class WalletlensConfig:
    """Full configuration object. Passed via Click context to all commands."""

    api: APIConfig = field(default_factory=APIConfig)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None = None) -> WalletlensConfig:
    """
    Load configuration from TOML file + environment variable overrides.

    Args:
        path: Override config file path. If None, uses WALLETLENS_CONFIG_PATH
              env var or default (~/.walletlens/config.toml).

    Returns:
        WalletlensConfig with all values resolved. A missing file is not an
        error; defaults apply.

    Raises:
        ConfigInvalidError: Config file exists but is invalid TOML or values.
    """
    config_path = _resolve_config_path(path)

    raw: dict = {}
    if config_path.exists():
        try:
            raw = toml.load(str(config_path))
        except toml.TomlDecodeError as e:
            raise ConfigInvalidError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        config = _dict_to_config(raw)
    except (ValueError, TypeError) as e:
        raise ConfigInvalidError(f"Invalid value in {config_path}: {e}") from e
    _apply_env_overrides(config)
    _validate_config(config)

    return config


def save_config(config: WalletlensConfig, path: str | None = None) -> Path:
    """
    Serialize WalletlensConfig to TOML and write to disk.

    Returns the path where config was written.
    """
    config_path = _resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "api": {
            "blockcypher_token": config.api.blockcypher_token,
            "blockchair_key": config.api.blockchair_key,
        },
        "providers": {
            "enabled": list(config.providers.enabled),
            "timeout_seconds": config.providers.timeout_seconds,
            "request_timeout_seconds": config.providers.request_timeout_seconds,
            "price_lookup": config.providers.price_lookup,
        },
        "rate_limits": {
            "window_seconds": config.rate_limits.window_seconds,
            "limits": dict(config.rate_limits.limits),
        },
        "cache": {
            "ttl_seconds": config.cache.ttl_seconds,
            "sweep_interval_seconds": config.cache.sweep_interval_seconds,
            "max_entries": config.cache.max_entries,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
        "logging": {
            "level": config.logging.level,
        },
    }

    with open(config_path, "w") as f:
        toml.dump(data, f)

    return config_path


def get_default_config_path() -> Path:
    """Return the default config file path."""
    return DEFAULT_CONFIG_PATH


# ──────────────────────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────────────────────


def _resolve_config_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get("WALLETLENS_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def _dict_to_config(raw: dict) -> WalletlensConfig:
    """Build WalletlensConfig from raw TOML dict, applying defaults for missing keys."""
    config = WalletlensConfig()

    api = raw.get("api", {})
    config.api.blockcypher_token = api.get("blockcypher_token", "")
    config.api.blockchair_key = api.get("blockchair_key", "")

    providers = raw.get("providers", {})
    config.providers.enabled = list(providers.get("enabled", KNOWN_PROVIDERS))
    config.providers.timeout_seconds = float(providers.get("timeout_seconds", 10.0))
    config.providers.request_timeout_seconds = float(
        providers.get("request_timeout_seconds", 30.0)
    )
    config.providers.price_lookup = bool(providers.get("price_lookup", True))

    rate_limits = raw.get("rate_limits", {})
    config.rate_limits.window_seconds = float(
        rate_limits.get("window_seconds", DEFAULT_WINDOW_SECONDS)
    )
    for name, limit in rate_limits.get("limits", {}).items():
        config.rate_limits.limits[name] = int(limit)

    cache = raw.get("cache", {})
    config.cache.ttl_seconds = float(cache.get("ttl_seconds", 300.0))
    config.cache.sweep_interval_seconds = float(cache.get("sweep_interval_seconds", 600.0))
    config.cache.max_entries = int(cache.get("max_entries", 0))

    output = raw.get("output", {})
    config.output.default_format = output.get("default_format", "json")
    config.output.color = bool(output.get("color", True))

    log = raw.get("logging", {})
    config.logging.level = str(log.get("level", "WARNING")).upper()

    return config


def _apply_env_overrides(config: WalletlensConfig) -> None:
    """Apply environment variable overrides to a loaded config."""
    if os.environ.get("WALLETLENS_NO_COLOR"):
        config.output.color = False

    if os.environ.get("WALLETLENS_NO_PRICE"):
        config.providers.price_lookup = False

    for env_var, dotted_key, converter in _ENV_OVERRIDES:
        val = os.environ.get(env_var)
        if val is None:
            continue
        section, key = dotted_key.split(".", 1)
        section_obj = getattr(config, section)
        try:
            setattr(section_obj, key, converter(val))
        except (ValueError, TypeError) as e:
            raise ConfigInvalidError(
                f"Invalid value for {env_var}={val!r}: {e}"
            ) from e

    config.logging.level = config.logging.level.upper()


def _validate_config(config: WalletlensConfig) -> None:
    """Validate config values. Raises ConfigInvalidError on invalid values."""
    if not config.providers.enabled:
        raise ConfigInvalidError("providers.enabled must list at least one provider")
    unknown = [p for p in config.providers.enabled if p not in KNOWN_PROVIDERS]
    if unknown:
        raise ConfigInvalidError(
            f"providers.enabled has unknown providers {unknown}; "
            f"known: {list(KNOWN_PROVIDERS)}"
        )
    if config.providers.timeout_seconds < 0:
        raise ConfigInvalidError(
            f"providers.timeout_seconds must be non-negative, "
            f"got {config.providers.timeout_seconds}"
        )
    if config.providers.request_timeout_seconds <= 0:
        raise ConfigInvalidError(
            f"providers.request_timeout_seconds must be positive, "
            f"got {config.providers.request_timeout_seconds}"
        )
    if config.cache.ttl_seconds <= 0:
        raise ConfigInvalidError(
            f"cache.ttl_seconds must be positive, got {config.cache.ttl_seconds}"
        )
    if config.cache.sweep_interval_seconds <= 0:
        raise ConfigInvalidError(
            f"cache.sweep_interval_seconds must be positive, "
            f"got {config.cache.sweep_interval_seconds}"
        )
    if config.cache.max_entries < 0:
        raise ConfigInvalidError(
            f"cache.max_entries must be non-negative, got {config.cache.max_entries}"
        )
    if config.rate_limits.window_seconds <= 0:
        raise ConfigInvalidError(
            f"rate_limits.window_seconds must be positive, "
            f"got {config.rate_limits.window_seconds}"
        )
    negative = {k: v for k, v in config.rate_limits.limits.items() if v < 0}
    if negative:
        raise ConfigInvalidError(f"rate_limits.limits must be non-negative, got {negative}")
    if config.output.default_format not in VALID_FORMATS:
        raise ConfigInvalidError(
            f"output.default_format must be one of {VALID_FORMATS}, "
            f"got {config.output.default_format!r}"
        )
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigInvalidError(
            f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}, "
            f"got {config.logging.level!r}"
        )
