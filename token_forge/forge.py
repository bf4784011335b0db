"""
Forge Payload Builder

Builds everything around the allocation engine that a forge submission needs:
a fresh default form, conversion of the web form's legacy payload shape, the
ForgeTokenConfig struct for the factory's forgeToken call, and reading the created
token's address back out of the transaction receipt.

Sending the transaction and waiting for the receipt belong to the caller's wallet
layer; this module only produces and interprets plain data.

Legacy Form Shape:
Older forms carried one address per mechanism (treasuryWallet, yieldToken, ...) with
flat per-mechanism share fields (treasuryShare, treasuryShareSell, treasurySplit).
Newer forms carry address arrays (treasuryWallets, ...) whose entries hold their own
share/sellShare/split. form_from_legacy collapses both into TaxAllocations; arrays win
when present and non-empty.
"""
import math
from decimal import Decimal
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Mapping, Optional

from mcp.server.fastmcp.utilities.logging import get_logger

from token_forge import config
from token_forge.allocation import (
    build_address_share_lists,
    build_basis_point_tax_totals,
    normalize,
    validate_form,
)
from token_forge.errors import InvalidForgeConfigError, InvalidFormDataError
from token_forge.schemas import (
    ADDRESS_FIELDS,
    AddressEntry,
    ForgeTokenConfig,
    ForgeTransaction,
    Mechanism,
    ReflectionShare,
    TaxAllocations,
    TokenFormData,
)
from token_forge.utils import parse_positive_decimal, same_address

logger = get_logger(__name__)

# Legacy flat keys per address-bearing mechanism: (share prefix, single address, address array)
LEGACY_MECHANISM_KEYS: Dict[Mechanism, tuple] = {
    Mechanism.treasury: ("treasury", "treasuryWallet", "treasuryWallets"),
    Mechanism.burn: ("burn", "burnAddress", "burnAddresses"),
    Mechanism.liquidity: ("liquidity", "liquidityRecipient", "liquidityRecipients"),
    Mechanism.yield_: ("yield", "yieldToken", "yieldTokens"),
    Mechanism.support: ("support", "supportToken", "supportTokens"),
}

# Legacy form keys copied straight onto TokenFormData
LEGACY_SCALAR_FIELDS: Dict[str, str] = {
    "name": "name",
    "symbol": "symbol",
    "totalSupply": "total_supply",
    "decimals": "decimals",
    "imageUri": "image_uri",
    "description": "description",
    "website": "website",
    "twitter": "twitter",
    "telegram": "telegram",
    "maxTxPercent": "max_tx_percent",
    "maxWalletPercent": "max_wallet_percent",
    "antiBotEnabled": "anti_bot_enabled",
    "tradingEnabledOnLaunch": "trading_enabled_on_launch",
    "renounceOwnership": "renounce_ownership",
    "treasuryReceiveInPLS": "treasury_receive_in_pls",
}

# Digits in 2**256 - 1; a base-unit amount with more cannot fit the factory's uint256
UINT256_DIGITS = len(str(config.UINT256_MAX))


def default_form_data() -> TokenFormData:
    """A fresh form, as shown on page load and after "create another"."""
    return TokenFormData(
        allocations=TaxAllocations(
            treasury_wallets=(AddressEntry(address=config.TREASURY_ADDRESS),),
            burn_addresses=(AddressEntry(address=config.BURN_ADDRESS),),
            liquidity_recipients=(AddressEntry(address=config.TREASURY_ADDRESS),),
        )
    )


def _legacy_entries(raw: Mapping[str, Any], mechanism: Mechanism) -> List[AddressEntry]:
    prefix, single_key, array_key = LEGACY_MECHANISM_KEYS[mechanism]

    array = raw.get(array_key) or []
    if array:
        if not isinstance(array, (list, tuple)) or not all(isinstance(item, Mapping) for item in array):
            raise InvalidFormDataError(f"Invalid token form - {array_key} must be an array of objects")
        return [
            AddressEntry(
                address=item.get("address") or "",
                buy_share=item.get("share") or 0,
                sell_share=item.get("sellShare") or 0,
                split=bool(item.get("split", False)),
            )
            for item in array
        ]

    address = raw.get(single_key) or ""
    buy_share = raw.get(f"{prefix}Share") or 0
    sell_share = raw.get(f"{prefix}ShareSell") or 0
    if not address and not buy_share and not sell_share:
        return []
    return [
        AddressEntry(
            address=address,
            buy_share=buy_share,
            sell_share=sell_share,
            split=bool(raw.get(f"{prefix}Split", False)),
        )
    ]


def form_from_legacy(raw: Mapping[str, Any]) -> TokenFormData:
    """
    Collapses a legacy/V2 web form payload into a TokenFormData.

    Args:
        raw: The form as the web client serialized it (camelCase keys).

    Returns:
        The equivalent TokenFormData. Derived fields (buyTax, sellTax) are ignored
        and recomputed from the allocations.

    Raises:
        pydantic.ValidationError: If a field has the wrong type or a share is negative.
        InvalidFormDataError: If an address array is not a list of objects.
    """
    data: Dict[str, Any] = {
        field: raw[key] for key, field in LEGACY_SCALAR_FIELDS.items() if key in raw
    }
    allocations: Dict[str, Any] = {
        field: _legacy_entries(raw, mechanism) for mechanism, field in ADDRESS_FIELDS.items()
    }
    allocations["reflection"] = ReflectionShare(
        buy_share=raw.get("reflectionShare") or 0,
        sell_share=raw.get("reflectionShareSell") or 0,
        split=bool(raw.get("reflectionSplit", False)),
    )
    data["allocations"] = TaxAllocations(**allocations)
    return TokenFormData(**data)


def parse_form(raw: Mapping[str, Any]) -> TokenFormData:
    """Loads a form in either the current shape (with "allocations") or the legacy one."""
    if "allocations" in raw:
        return TokenFormData.model_validate(raw)
    return form_from_legacy(raw)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Whole-token amount to integer base units, truncating dust below one unit."""
    return math.floor(Fraction(amount) * 10**decimals)


def _total_supply_units(form: TokenFormData) -> int:
    supply = parse_positive_decimal(form.total_supply)
    # Exponent first: "1e999999999" must not be expanded into an integer
    magnitude = supply.adjusted() + form.decimals
    if magnitude >= UINT256_DIGITS:
        raise InvalidForgeConfigError(["Total supply exceeds the uint256 maximum"])
    units = to_base_units(supply, form.decimals) if magnitude >= 0 else 0
    if units > config.UINT256_MAX:
        raise InvalidForgeConfigError(["Total supply exceeds the uint256 maximum"])
    if units == 0:
        raise InvalidForgeConfigError(["Total supply must be at least one base unit"])
    return units


def _limit_amount(total_supply_units: int, percent: int) -> int:
    return total_supply_units * percent // 100 if percent > 0 else 0


def build_forge_config(form: TokenFormData) -> ForgeTokenConfig:
    """
    Builds the ForgeTokenConfig struct for the factory's forgeToken call.

    Args:
        form: The token form snapshot.

    Returns:
        The struct with tax rates and shares in basis points and amounts in base units.

    Raises:
        InvalidForgeConfigError: If the form does not pass validate(); the error
            carries every validation message. Also raised when the supply is not
            between 1 and 2**256 - 1 base units.
    """
    result = validate_form(form)
    if not result.valid:
        logger.warning(f"Refusing to build forge config for '{form.symbol}': {result.errors}")
        raise InvalidForgeConfigError(result.errors)

    try:
        total_supply_units = _total_supply_units(form)
    except InvalidForgeConfigError as e:
        logger.warning(f"Refusing to build forge config for '{form.symbol}': {e.errors}")
        raise
    tax_bps = build_basis_point_tax_totals(form.allocations)
    shares = normalize(form.allocations)
    address_lists = build_address_share_lists(form.allocations)

    forge_config = ForgeTokenConfig(
        name=form.name.strip(),
        symbol=form.symbol.strip(),
        total_supply=total_supply_units,
        decimals=form.decimals,
        buy_tax=tax_bps.buy_tax_bps,
        sell_tax=tax_bps.sell_tax_bps,
        treasury_share=shares.treasury_share,
        burn_share=shares.burn_share,
        reflection_share=shares.reflection_share,
        liquidity_share=shares.liquidity_share,
        yield_share=shares.yield_share,
        support_share=shares.support_share,
        treasury_wallets=address_lists.treasury_wallets,
        yield_tokens=address_lists.yield_tokens,
        support_tokens=address_lists.support_tokens,
        router=config.DEFAULT_ROUTER_ADDRESS,
        max_tx_amount=_limit_amount(total_supply_units, form.max_tx_percent),
        max_wallet_amount=_limit_amount(total_supply_units, form.max_wallet_percent),
        anti_bot_enabled=form.anti_bot_enabled,
        trading_enabled_on_launch=form.trading_enabled_on_launch,
    )
    logger.info(f"Built forge config for '{forge_config.symbol}': "
                f"buy_tax={forge_config.buy_tax}bps, sell_tax={forge_config.sell_tax}bps, "
                f"shares={shares.as_tuple()}")
    return forge_config


def build_forge_transaction(form: TokenFormData) -> ForgeTransaction:
    """The forgeToken call (factory address, struct argument, creation fee) for a form."""
    return ForgeTransaction(
        address=config.FORGE_FACTORY_ADDRESS,
        args=(build_forge_config(form),),
        value=config.CREATION_FEE_WEI,
        renounce_after_forge=form.renounce_ownership,
    )


def extract_forged_token_address(
    logs: Iterable[Mapping[str, Any]],
    factory_address: Optional[str] = None,
) -> Optional[str]:
    """
    Reads the new token's address from a forgeToken receipt.

    The first log is usually the mint's Transfer event, so the TokenForged event is
    found by emitter instead: the first log emitted by the factory. Its third topic is
    the indexed token address, left-padded to 32 bytes.

    Args:
        logs: Receipt logs, each a mapping with "address" and "topics".
        factory_address: Factory that emits TokenForged (defaults to config).

    Returns:
        The 0x-prefixed token address, or None if the receipt has no such event.
    """
    factory_address = factory_address or config.FORGE_FACTORY_ADDRESS
    forged_log = next(
        (log for log in logs if same_address(log.get("address") or "", factory_address)),
        None,
    )
    if forged_log is None:
        return None

    topics = forged_log.get("topics") or []
    if len(topics) < 3 or not topics[2]:
        return None
    topic = topics[2]
    if isinstance(topic, (bytes, bytearray)):
        topic = topic.hex()
    return "0x" + topic[-40:]
