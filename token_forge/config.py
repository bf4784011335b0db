import os
import logging
from typing import Optional
from dotenv import load_dotenv

from token_forge.errors import ConfigurationError
from token_forge.utils import is_valid_address

"""
Configuration Management for the Token Forge

This module loads and validates the settings used when building forge payloads.
Settings come from environment variables (optionally via a .env file) with defaults
matching the deployed PulseChain factory.

Configuration Sources (in order of precedence):
1. Environment variables
2. Default values defined in this module

Environment Variables:
    FORGE_FACTORY_ADDRESS: Address of the token factory contract
    TREASURY_ADDRESS: Platform treasury, the default treasury and LP recipient
    BURN_ADDRESS: Default burn destination
    DEFAULT_ROUTER_ADDRESS: Router passed to the factory (zero = factory default)
    CREATION_FEE_PLS: Creation fee in whole PLS sent with forgeToken
    DEFAULT_TOKEN_DECIMALS: Decimals for new forms (0-18)
    DEFAULT_TOTAL_SUPPLY: Total supply for new forms, as a decimal string

Contract constants (BASIS_POINTS, MAX_TAX_PERCENT, SYMBOL_MAX_LENGTH) are enforced
on-chain and are therefore not configurable.
"""

# Set up logger
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def _get_env_str(key: str, default: str, required: bool = False) -> str:
    """Get environment variable as string with validation."""
    value = os.getenv(key, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {key} is not set")
    return value


def _get_env_int(key: str, default: int, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
    """Get environment variable as integer with validation."""
    try:
        value = int(os.getenv(key, str(default)))
    except ValueError:
        raise ConfigurationError(f"Environment variable {key} must be a valid integer")
    if min_val is not None and value < min_val:
        raise ConfigurationError(f"Environment variable {key} must be >= {min_val}")
    if max_val is not None and value > max_val:
        raise ConfigurationError(f"Environment variable {key} must be <= {max_val}")
    return value


def _get_env_address(key: str, default: str) -> str:
    """Get environment variable as a 0x-prefixed account address."""
    value = os.getenv(key, default).strip()
    if not is_valid_address(value):
        raise ConfigurationError(f"Environment variable {key} must be a valid account address, got '{value}'")
    return value


# --- Contract Constants ---
BASIS_POINTS = 10000
MAX_TAX_PERCENT = 25
MAX_TAX_BPS = MAX_TAX_PERCENT * 100
SYMBOL_MAX_LENGTH = 11
WEI_PER_PLS = 10**18
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
UINT256_MAX = 2**256 - 1

try:
    # --- Contract Addresses ---
    FORGE_FACTORY_ADDRESS = _get_env_address("FORGE_FACTORY_ADDRESS", "0x0F9eeD13C8820f7Ee6e46f3C383f40Ce4e540c84")
    TREASURY_ADDRESS = _get_env_address("TREASURY_ADDRESS", "0x49bBEFa1d94702C0e9a5EAdDEc7c3C5D3eb9086B")
    BURN_ADDRESS = _get_env_address("BURN_ADDRESS", "0x000000000000000000000000000000000000dEaD")
    DEFAULT_ROUTER_ADDRESS = _get_env_address("DEFAULT_ROUTER_ADDRESS", ZERO_ADDRESS)

    # --- Fees ---
    CREATION_FEE_PLS = _get_env_int("CREATION_FEE_PLS", 100000, min_val=0)
    CREATION_FEE_WEI = CREATION_FEE_PLS * WEI_PER_PLS

    # --- Form Defaults ---
    DEFAULT_TOKEN_DECIMALS = _get_env_int("DEFAULT_TOKEN_DECIMALS", 18, min_val=0, max_val=18)
    DEFAULT_TOTAL_SUPPLY = _get_env_str("DEFAULT_TOTAL_SUPPLY", "1000000000", required=True)

    logger.info("Configuration loaded successfully")

except ConfigurationError as e:
    logger.error(f"Configuration error: {e}")
    raise
