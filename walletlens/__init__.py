"""walletlens: multi-provider Bitcoin wallet analysis."""

__version__ = "0.1.0"

from walletlens.analyzer import WalletAnalyzer, analyze_wallet  # noqa: E402
from walletlens.exceptions import AllProvidersFailedError, WalletlensError  # noqa: E402
from walletlens.models import AggregatedWalletData, ApiStatus  # noqa: E402

__all__ = [
    "AggregatedWalletData",
    "AllProvidersFailedError",
    "ApiStatus",
    "WalletAnalyzer",
    "WalletlensError",
    "__version__",
    "analyze_wallet",
]
