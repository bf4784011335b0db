"""
Pydantic Data Models for the Token Forge

This module defines the data models shared by the allocation engine, the forge payload
builder and the MCP server. All models are frozen: callers hand the engine immutable
snapshots and get fresh results back.

Key Components:
- Mechanism Enum: The six fee-routing mechanisms in their fixed order
- AddressEntry / ReflectionShare: Per-destination tax percentages with split toggles
- TaxAllocations: Five address lists plus the address-less Reflection share
- AllocationTotals / NormalizedShareSet / AddressShareLists / BasisPointTaxTotals: Engine outputs
- TokenMeta / TokenFormData: What the user typed into the forge form
- ForgeTokenConfig / ForgeTransaction: The payload for the factory's forgeToken call

Data Validation Features:
- Percentages are Decimals so that totals are exact
- Negative percentages and out-of-range limits are rejected at construction
- camelCase aliases so that JSON produced by the web form loads unchanged

Schema Structure:
- Percent values (buy_share, sell_share) are percentage points of the traded amount
- Basis point values (shares, *_bps) are integers, 10000 = 100%
"""
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from token_forge import config

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Mechanism(str, Enum):
    treasury = "treasury"
    burn = "burn"
    reflection = "reflection"
    liquidity = "liquidity"
    yield_ = "yield"
    support = "support"


# Fixed order, also the tie-break order for apportionment
MECHANISMS: Tuple[Mechanism, ...] = tuple(Mechanism)

# Mechanisms that route tax to explicit addresses, and the TaxAllocations field for each
ADDRESS_FIELDS: Dict[Mechanism, str] = {
    Mechanism.treasury: "treasury_wallets",
    Mechanism.burn: "burn_addresses",
    Mechanism.liquidity: "liquidity_recipients",
    Mechanism.yield_: "yield_tokens",
    Mechanism.support: "support_tokens",
}


class ShareSplit(BaseModel):
    """A buy/sell percentage pair. In unified mode buy_share applies to both directions."""
    model_config = _MODEL_CONFIG

    buy_share: Decimal = Field(default=Decimal(0), ge=0)
    sell_share: Decimal = Field(default=Decimal(0), ge=0)
    split: bool = False

    @property
    def buy_contribution(self) -> Decimal:
        return self.buy_share

    @property
    def sell_contribution(self) -> Decimal:
        return self.sell_share if self.split else self.buy_share


class AddressEntry(ShareSplit):
    """One destination wallet or external token within a mechanism."""
    address: str = ""

    @field_validator("address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        return value.strip()


class ReflectionShare(ShareSplit):
    """Reflection pays all holders, so it has a share pair but no addresses."""


class TaxAllocations(BaseModel):
    model_config = _MODEL_CONFIG

    treasury_wallets: Tuple[AddressEntry, ...] = ()
    burn_addresses: Tuple[AddressEntry, ...] = ()
    reflection: ReflectionShare = ReflectionShare()
    liquidity_recipients: Tuple[AddressEntry, ...] = ()
    yield_tokens: Tuple[AddressEntry, ...] = ()
    support_tokens: Tuple[AddressEntry, ...] = ()

    def entries(self, mechanism: Mechanism) -> Tuple[AddressEntry, ...]:
        """Address entries of an address-bearing mechanism, in display order."""
        if mechanism not in ADDRESS_FIELDS:
            raise ValueError(f"Mechanism '{mechanism.value}' has no address entries")
        return getattr(self, ADDRESS_FIELDS[mechanism])

    def primary_address(self, mechanism: Mechanism) -> str:
        """First entry's address, used for single-address legacy fields."""
        entries = self.entries(mechanism)
        return entries[0].address if entries else ""


class MechanismTotals(BaseModel):
    model_config = _MODEL_CONFIG

    buy: Decimal = Decimal(0)
    sell: Decimal = Decimal(0)

    @computed_field
    @property
    def has_any_tax(self) -> bool:
        return self.buy > 0 or self.sell > 0

    @computed_field
    @property
    def taxes_match(self) -> bool:
        return abs(self.buy - self.sell) < Decimal("0.001")


class AllocationTotals(BaseModel):
    model_config = _MODEL_CONFIG

    mechanisms: Dict[Mechanism, MechanismTotals]
    buy: Decimal
    sell: Decimal

    def for_mechanism(self, mechanism: Mechanism) -> MechanismTotals:
        return self.mechanisms.get(mechanism, MechanismTotals())


class ValidationResult(BaseModel):
    model_config = _MODEL_CONFIG

    valid: bool
    errors: List[str] = []


class NormalizedShareSet(BaseModel):
    """Each mechanism's proportion of the collected tax, in basis points."""
    model_config = _MODEL_CONFIG

    treasury_share: int = Field(default=0, ge=0)
    burn_share: int = Field(default=0, ge=0)
    reflection_share: int = Field(default=0, ge=0)
    liquidity_share: int = Field(default=0, ge=0)
    yield_share: int = Field(default=0, ge=0)
    support_share: int = Field(default=0, ge=0)

    @classmethod
    def from_values(cls, values: List[int]) -> "NormalizedShareSet":
        """Builds the set from six values in mechanism order."""
        return cls(**{f"{m.value}_share": v for m, v in zip(MECHANISMS, values)})

    def for_mechanism(self, mechanism: Mechanism) -> int:
        return getattr(self, f"{mechanism.value}_share")

    def as_tuple(self) -> Tuple[int, ...]:
        return tuple(self.for_mechanism(m) for m in MECHANISMS)

    @property
    def total(self) -> int:
        return sum(self.as_tuple())


class AddressShare(BaseModel):
    model_config = _MODEL_CONFIG

    addr: str
    share: int = Field(ge=0, le=config.BASIS_POINTS)


class AddressShareLists(BaseModel):
    model_config = _MODEL_CONFIG

    treasury_wallets: Tuple[AddressShare, ...] = ()
    burn_addresses: Tuple[AddressShare, ...] = ()
    liquidity_recipients: Tuple[AddressShare, ...] = ()
    yield_tokens: Tuple[AddressShare, ...] = ()
    support_tokens: Tuple[AddressShare, ...] = ()

    def for_mechanism(self, mechanism: Mechanism) -> Tuple[AddressShare, ...]:
        return getattr(self, ADDRESS_FIELDS[mechanism])


class BasisPointTaxTotals(BaseModel):
    model_config = _MODEL_CONFIG

    buy_tax_bps: int = Field(ge=0)
    sell_tax_bps: int = Field(ge=0)


class TokenMeta(BaseModel):
    model_config = _MODEL_CONFIG

    name: str = ""
    symbol: str = ""
    total_supply: str = config.DEFAULT_TOTAL_SUPPLY


class TokenFormData(TokenMeta):
    decimals: int = Field(default=config.DEFAULT_TOKEN_DECIMALS, ge=0, le=18)
    # Branding metadata, carried through for the metadata store
    image_uri: str = ""
    description: str = ""
    website: str = ""
    twitter: str = ""
    telegram: str = ""
    allocations: TaxAllocations = TaxAllocations()
    # Whole percents of supply, 0 = no limit
    max_tx_percent: int = Field(default=0, ge=0, le=100)
    max_wallet_percent: int = Field(default=0, ge=0, le=100)
    anti_bot_enabled: bool = False
    trading_enabled_on_launch: bool = True
    renounce_ownership: bool = False
    treasury_receive_in_pls: bool = Field(default=False, alias="treasuryReceiveInPLS")

    @property
    def meta(self) -> TokenMeta:
        return TokenMeta(name=self.name, symbol=self.symbol, total_supply=self.total_supply)


class ForgeTokenConfig(BaseModel):
    """Mirror of the factory's ForgeTokenConfig struct (V2, multi-address)."""
    model_config = _MODEL_CONFIG

    name: str
    symbol: str
    total_supply: int = Field(gt=0, le=config.UINT256_MAX)
    decimals: int
    buy_tax: int = Field(ge=0, le=config.MAX_TAX_BPS)
    sell_tax: int = Field(ge=0, le=config.MAX_TAX_BPS)
    treasury_share: int
    burn_share: int
    reflection_share: int
    liquidity_share: int
    yield_share: int
    support_share: int
    treasury_wallets: Tuple[AddressShare, ...]
    yield_tokens: Tuple[AddressShare, ...]
    support_tokens: Tuple[AddressShare, ...]
    router: str = config.ZERO_ADDRESS
    max_tx_amount: int = Field(default=0, ge=0, le=config.UINT256_MAX)
    max_wallet_amount: int = Field(default=0, ge=0, le=config.UINT256_MAX)
    anti_bot_enabled: bool = False
    trading_enabled_on_launch: bool = True


class ForgeTransaction(BaseModel):
    """What the transaction-submission layer needs to call forgeToken."""
    model_config = _MODEL_CONFIG

    address: str
    function_name: str = "forgeToken"
    args: Tuple[ForgeTokenConfig]
    value: int
    renounce_after_forge: bool = False
