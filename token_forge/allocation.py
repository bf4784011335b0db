"""
Tax Allocation Engine

This module turns a token's per-mechanism, per-address tax percentages into the integer
basis-point values the forge factory accepts. It is a set of pure functions: every call
receives an immutable TaxAllocations snapshot and returns a fresh result, so it can be
re-run on every form change.

Operations:
- compute_totals: Buy/sell percentage totals per mechanism and overall
- validate: Collects every form problem as a user-facing message (never raises)
- normalize: Each mechanism's share of the collected buy tax, summing to exactly 10000 bps
- build_address_share_lists: Splits each mechanism's 10000 bps among its addresses
- build_basis_point_tax_totals: The buy and sell tax rates themselves, in bps

Unified vs Split Entries:
An entry with split=False charges its buy_share on BOTH buys and sells (5% means 5% buy
and 5% sell). With split=True, buy_share and sell_share are independent. This is the
interpretation sent on-chain.

Rounding:
normalize and build_address_share_lists use largest-remainder (Hamilton) apportionment
over exact rationals. Each exact share is floored, and the basis points lost to flooring
go one at a time to the largest fractional remainders, ties going to the earlier
mechanism (or entry). The result always sums to exactly the target.

Preconditions:
normalize does not re-validate. Callers run validate first and must not submit a
payload built from input that failed validation.
"""
from decimal import Decimal
from fractions import Fraction
from typing import Dict, List, Sequence, Tuple

from mcp.server.fastmcp.utilities.logging import get_logger

from token_forge import config
from token_forge.schemas import (
    ADDRESS_FIELDS,
    MECHANISMS,
    AddressEntry,
    AddressShare,
    AddressShareLists,
    AllocationTotals,
    BasisPointTaxTotals,
    Mechanism,
    MechanismTotals,
    NormalizedShareSet,
    ShareSplit,
    TaxAllocations,
    TokenFormData,
    TokenMeta,
    ValidationResult,
)
from token_forge.utils import is_valid_address, parse_positive_decimal, percent_to_bps

logger = get_logger(__name__)

# Noun used in "Invalid <noun> address" messages
ADDRESS_NOUNS: Dict[Mechanism, str] = {
    Mechanism.treasury: "treasury wallet",
    Mechanism.burn: "burn",
    Mechanism.liquidity: "liquidity recipient",
    Mechanism.yield_: "yield token",
    Mechanism.support: "support token",
}


def _default_addresses() -> Dict[Mechanism, str]:
    # Read at call time so tests can patch config
    return {
        Mechanism.treasury: config.TREASURY_ADDRESS,
        Mechanism.burn: config.BURN_ADDRESS,
        Mechanism.liquidity: config.TREASURY_ADDRESS,
    }


def apportion(weights: Sequence, total: int = config.BASIS_POINTS) -> List[int]:
    """
    Splits ``total`` integer units in proportion to ``weights`` (largest remainder).

    Args:
        weights: Non-negative numbers (int, Decimal, Fraction or float).
        total: The integer the result must sum to.

    Returns:
        One non-negative int per weight, summing to ``total``, or all zeros when
        the weights sum to zero. Ties on the remainder go to the lower index.
    """
    exact_weights = [Fraction(w) for w in weights]
    weight_sum = sum(exact_weights, Fraction(0))
    if weight_sum <= 0:
        return [0] * len(exact_weights)

    floored: List[int] = []
    remainders: List[Tuple[Fraction, int]] = []
    for index, weight in enumerate(exact_weights):
        exact = weight / weight_sum * total
        whole = exact.numerator // exact.denominator
        floored.append(whole)
        remainders.append((exact - whole, index))

    # Remainders sum to the shortfall, so one pass never runs past the list
    shortfall = total - sum(floored)
    for remainder, index in sorted(remainders, key=lambda r: (-r[0], r[1]))[:shortfall]:
        floored[index] += 1
    return floored


def _sum_entries(entries: Sequence[ShareSplit]) -> MechanismTotals:
    buy = sum((e.buy_contribution for e in entries), Decimal(0))
    sell = sum((e.sell_contribution for e in entries), Decimal(0))
    return MechanismTotals(buy=buy, sell=sell)


def compute_totals(allocations: TaxAllocations) -> AllocationTotals:
    """Buy/sell percentage totals per mechanism and across all six mechanisms."""
    per_mechanism: Dict[Mechanism, MechanismTotals] = {}
    for mechanism in MECHANISMS:
        if mechanism == Mechanism.reflection:
            per_mechanism[mechanism] = _sum_entries([allocations.reflection])
        else:
            per_mechanism[mechanism] = _sum_entries(allocations.entries(mechanism))

    buy = sum((t.buy for t in per_mechanism.values()), Decimal(0))
    sell = sum((t.sell for t in per_mechanism.values()), Decimal(0))
    logger.debug(f"Computed tax totals: buy={buy}%, sell={sell}%")
    return AllocationTotals(mechanisms=per_mechanism, buy=buy, sell=sell)


def _has_address(entries: Sequence[AddressEntry]) -> bool:
    return any(e.address for e in entries)


def validate(allocations: TaxAllocations, token_meta: TokenMeta) -> ValidationResult:
    """
    Checks a token form and collects every violated constraint.

    Checks run in a fixed order and never stop at the first failure, so the same
    input always yields the same list of messages.

    Args:
        allocations: The six mechanisms' tax inputs.
        token_meta: Name, symbol and total supply.

    Returns:
        ValidationResult with valid=True only when errors is empty.
    """
    errors: List[str] = []

    if not token_meta.name.strip():
        errors.append("Token name is required")
    if not token_meta.symbol.strip():
        errors.append("Token symbol is required")
    if len(token_meta.symbol) > config.SYMBOL_MAX_LENGTH:
        errors.append(f"Symbol must be {config.SYMBOL_MAX_LENGTH} characters or less")
    if parse_positive_decimal(token_meta.total_supply) is None:
        errors.append("Total supply must be greater than 0")

    totals = compute_totals(allocations)
    if totals.buy > config.MAX_TAX_PERCENT:
        errors.append(f"Total buy tax cannot exceed {config.MAX_TAX_PERCENT}%")
    if totals.sell > config.MAX_TAX_PERCENT:
        errors.append(f"Total sell tax cannot exceed {config.MAX_TAX_PERCENT}%")

    for mechanism in ADDRESS_FIELDS:
        for entry in allocations.entries(mechanism):
            if entry.address and not is_valid_address(entry.address):
                errors.append(f"Invalid {ADDRESS_NOUNS[mechanism]} address: {entry.address}")

    if totals.for_mechanism(Mechanism.yield_).has_any_tax and not _has_address(allocations.yield_tokens):
        errors.append("Yield token address required when yield tax > 0")
    if totals.for_mechanism(Mechanism.support).has_any_tax and not _has_address(allocations.support_tokens):
        errors.append("Support token address required when support tax > 0")

    if errors:
        logger.debug(f"Token form failed validation with {len(errors)} error(s)")
    return ValidationResult(valid=not errors, errors=errors)


def validate_form(form: TokenFormData) -> ValidationResult:
    """validate() over a whole TokenFormData."""
    return validate(form.allocations, form.meta)


def normalize(allocations: TaxAllocations) -> NormalizedShareSet:
    """
    Each mechanism's proportion of the total buy tax, in basis points.

    The six values sum to exactly 10000, or are all zero when no buy tax is
    configured. The contract takes one share set, so these proportions also govern
    how sell tax is routed.
    """
    totals = compute_totals(allocations)
    values = apportion([totals.for_mechanism(m).buy for m in MECHANISMS])
    logger.debug(f"Normalized mechanism shares: {dict(zip((m.value for m in MECHANISMS), values))}")
    return NormalizedShareSet.from_values(values)


def _entry_shares(entries: Sequence[AddressEntry]) -> Tuple[AddressShare, ...]:
    weights = [e.buy_contribution + e.sell_contribution for e in entries]
    if not any(weights):
        weights = [1] * len(entries)
    return tuple(
        AddressShare(addr=e.address, share=share)
        for e, share in zip(entries, apportion(weights))
    )


def build_address_share_lists(allocations: TaxAllocations) -> AddressShareLists:
    """
    Splits each address-bearing mechanism's 10000 bps among its addresses.

    An entry's weight is its buy plus sell contribution; entries with no address
    are skipped. Treasury, Burn and Liquidity fall back to their default address at
    10000 bps when they have no addresses, Yield and Support to an empty list.
    """
    defaults = _default_addresses()
    lists: Dict[str, Tuple[AddressShare, ...]] = {}
    for mechanism, field in ADDRESS_FIELDS.items():
        entries = [e for e in allocations.entries(mechanism) if e.address]
        if entries:
            lists[field] = _entry_shares(entries)
        elif mechanism in defaults:
            lists[field] = (AddressShare(addr=defaults[mechanism], share=config.BASIS_POINTS),)
        else:
            lists[field] = ()
    return AddressShareLists(**lists)


def build_basis_point_tax_totals(allocations: TaxAllocations) -> BasisPointTaxTotals:
    """The combined buy and sell tax rates in basis points (6.25% -> 625)."""
    totals = compute_totals(allocations)
    return BasisPointTaxTotals(
        buy_tax_bps=percent_to_bps(totals.buy),
        sell_tax_bps=percent_to_bps(totals.sell),
    )
