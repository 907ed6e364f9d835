"""
Custom exception hierarchy for walletlens.

Each exception maps to a CLI exit code and a JSON error_code field.
Provider and network errors are raised inside adapters and converted into
failed ProviderResult objects at the adapter boundary; only
AllProvidersFailedError escapes WalletAnalyzer.analyze_wallet.

Exit code mapping:
  1 — WalletlensError (generic error)
  2 — ProviderError (HTTP status, parse failure, rate limit)
  3 — NetworkError (timeout, connection refused)
  4 — AllProvidersFailedError (no provider returned data)
  5 — ConfigError (malformed config)
"""


class WalletlensError(Exception):
    """Base exception for all walletlens errors."""

    exit_code: int = 1
    error_code: str = "unknown_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ProviderError(WalletlensError):
    """A data provider answered with something we cannot use."""

    exit_code = 2
    error_code = "provider_error"


class ProviderFetchError(ProviderError):
    """Non-success HTTP status or unparseable response from one provider."""

    error_code = "provider_fetch_failed"


class RateLimitExceeded(ProviderError):
    """Provider request budget exhausted (locally or upstream HTTP 429)."""

    error_code = "rate_limited"

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int = 60) -> None:
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after


class NetworkError(WalletlensError):
    """Network connectivity issue — timeout or connection failure."""

    exit_code = 3
    error_code = "network_error"


class NetworkTimeoutError(NetworkError):
    """Request timed out."""

    error_code = "network_timeout"


class ConnectionFailedError(NetworkError):
    """Could not connect to the provider endpoint."""

    error_code = "connection_failed"


class AllProvidersFailedError(WalletlensError):
    """Every configured provider failed; no wallet data could be assembled."""

    exit_code = 4
    error_code = "all_providers_failed"

    def __init__(self, message: str, provider_errors: dict[str, str] | None = None) -> None:
        super().__init__(message, details={"providers": dict(provider_errors or {})})
        self.provider_errors = dict(provider_errors or {})


class ConfigError(WalletlensError):
    """Config file is missing or malformed."""

    exit_code = 5
    error_code = "config_error"


class ConfigInvalidError(ConfigError):
    """Config file exists but contains invalid TOML or invalid values."""

    error_code = "config_invalid"
