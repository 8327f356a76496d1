from ..services.wallet import WalletRuntime, get_wallet_runtime


def get_runtime() -> WalletRuntime:
    """Get the wallet runtime serving this instance."""
    return get_wallet_runtime()
