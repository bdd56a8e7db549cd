"""Constants for the MonitorChain SDK.

This module defines the constant values used across the SDK: ABI
decoding constants, transaction coordination defaults, gas defaults and
node connection settings.
"""

# ABI Encoding Constants
ABI_SELECTOR_LENGTH = 4
ABI_WORD_LENGTH = 32
REVERT_SELECTOR = "0x08c379a0"

# Transaction Coordination
GLOBAL_LOCK_KEY = "global"
MAX_IN_FLIGHT = 100  # Submitted-but-unconfirmed transactions before backpressure
BACKPRESSURE_POLL_SECONDS = 10.0
INTENT_ID_MODULUS = 2**53
CONSTRUCTOR_METHOD = "constructor"

# Gas Constants
DEFAULT_GAS_LIMIT = "6000000"
GAS_PRICE_MULTIPLIER = 1.2

# Node Connection
SUPPORTED_PROTOCOLS = ("ws", "wss", "http", "https", "ipc")
PROVIDER_TIMEOUT_SECONDS = 30
EVENT_POLL_SECONDS = 2.0

# Wallets derived from a mnemonic (m/44'/60'/0'/0/i)
HD_WALLET_PATH = "m/44'/60'/0'/0/{index}"
HD_WALLET_COUNT = 20

__all__ = [
    "ABI_SELECTOR_LENGTH",
    "ABI_WORD_LENGTH",
    "REVERT_SELECTOR",
    "GLOBAL_LOCK_KEY",
    "MAX_IN_FLIGHT",
    "BACKPRESSURE_POLL_SECONDS",
    "INTENT_ID_MODULUS",
    "CONSTRUCTOR_METHOD",
    "DEFAULT_GAS_LIMIT",
    "GAS_PRICE_MULTIPLIER",
    "SUPPORTED_PROTOCOLS",
    "PROVIDER_TIMEOUT_SECONDS",
    "EVENT_POLL_SECONDS",
    "HD_WALLET_PATH",
    "HD_WALLET_COUNT",
]
