import pytest
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

from token_forge import config
from token_forge import server

WALLET_A = "0x" + "a" * 40
YIELD_TOKEN = "0x" + "1" * 40
TOKEN_ADDRESS = "0x" + "c" * 40
DEAD = "0x000000000000000000000000000000000000dEaD"


@pytest.fixture
def mock_context():
    return MagicMock()


@pytest.fixture
def valid_form_json():
    form = {
        "name": "Forge Token",
        "symbol": "FRG",
        "totalSupply": "1000000",
        "decimals": 18,
        "maxWalletPercent": 1,
        "renounceOwnership": True,
        "allocations": {
            "treasuryWallets": [{"address": WALLET_A, "buyShare": 5, "sellShare": 0, "split": False}],
            "burnAddresses": [{"address": DEAD, "buyShare": 1}],
        },
    }
    return json.dumps(form)


@pytest.fixture
def legacy_form_json():
    # Flat shape posted by older web clients
    form = {
        "name": "Legacy Token",
        "symbol": "LGC",
        "totalSupply": "1000000000",
        "decimals": 18,
        "treasuryWallet": WALLET_A,
        "treasuryShare": 4,
        "yieldToken": YIELD_TOKEN,
        "yieldShare": 2,
        "reflectionShare": 1,
        "reflectionShareSell": 3,
        "reflectionSplit": True,
    }
    return json.dumps(form)


@pytest.mark.asyncio
async def test_get_default_form(mock_context):
    result = json.loads(await server.get_default_form(context=mock_context))
    assert result["totalSupply"] == config.DEFAULT_TOTAL_SUPPLY
    assert result["tradingEnabledOnLaunch"] is True
    assert result["allocations"]["treasuryWallets"][0]["address"] == config.TREASURY_ADDRESS


@pytest.mark.asyncio
async def test_compute_tax_totals(mock_context, valid_form_json):
    result = json.loads(await server.compute_tax_totals(context=mock_context, form_json=valid_form_json))
    assert Decimal(result["buy"]) == 6
    assert Decimal(result["sell"]) == 6
    assert Decimal(result["mechanisms"]["treasury"]["buy"]) == 5
    assert Decimal(result["mechanisms"]["burn"]["sell"]) == 1
    assert Decimal(result["mechanisms"]["yield"]["buy"]) == 0


@pytest.mark.asyncio
async def test_compute_tax_totals_legacy_form(mock_context, legacy_form_json):
    result = json.loads(await server.compute_tax_totals(context=mock_context, form_json=legacy_form_json))
    # Treasury 4 + Yield 2 + Reflection 1 buy, 4 + 2 + 3 sell
    assert Decimal(result["buy"]) == 7
    assert Decimal(result["sell"]) == 9


@pytest.mark.asyncio
async def test_validate_token_form_valid(mock_context, valid_form_json):
    result = json.loads(await server.validate_token_form(context=mock_context, form_json=valid_form_json))
    assert result == {"valid": True, "errors": []}


@pytest.mark.asyncio
async def test_validate_token_form_lists_all_errors(mock_context):
    form_json = json.dumps({
        "name": "",
        "symbol": "TWELVECHARSX",
        "allocations": {
            "treasuryWallets": [{"address": WALLET_A, "buyShare": 30}],
            "yieldTokens": [{"address": "", "buyShare": 0, "sellShare": 1, "split": True}],
        },
    })
    result = json.loads(await server.validate_token_form(context=mock_context, form_json=form_json))
    assert result["valid"] is False
    assert result["errors"] == [
        "Token name is required",
        "Symbol must be 11 characters or less",
        "Total buy tax cannot exceed 25%",
        "Total sell tax cannot exceed 25%",
        "Yield token address required when yield tax > 0",
    ]


@pytest.mark.asyncio
async def test_validate_token_form_invalid_json(mock_context):
    result = await server.validate_token_form(context=mock_context, form_json="{not json")
    assert result.startswith("Error: Invalid JSON format provided for Form JSON")


@pytest.mark.asyncio
async def test_validate_token_form_rejects_non_object(mock_context):
    result = await server.validate_token_form(context=mock_context, form_json="[1, 2, 3]")
    assert result == "Error: Form JSON must be an object"


@pytest.mark.asyncio
async def test_validate_token_form_rejects_schema_errors(mock_context):
    form_json = json.dumps({"name": "Bad", "allocations": {"treasuryWallets": [{"address": WALLET_A, "buyShare": -2}]}})
    result = await server.validate_token_form(context=mock_context, form_json=form_json)
    assert result.startswith("Error: Invalid token form")


@pytest.mark.asyncio
async def test_validate_token_form_rejects_oversized_input(mock_context):
    form_json = json.dumps({"name": "x" * server.MAX_FORM_JSON_LENGTH})
    result = await server.validate_token_form(context=mock_context, form_json=form_json)
    assert result.startswith("Error: Form JSON is too large")


@pytest.mark.asyncio
async def test_normalize_tax_shares(mock_context, valid_form_json):
    result = json.loads(await server.normalize_tax_shares(context=mock_context, form_json=valid_form_json))
    assert result["taxBps"] == {"buyTaxBps": 600, "sellTaxBps": 600}
    assert result["shares"] == {
        "treasuryShare": 8333,
        "burnShare": 1667,
        "reflectionShare": 0,
        "liquidityShare": 0,
        "yieldShare": 0,
        "supportShare": 0,
    }
    assert result["addressShares"]["treasuryWallets"] == [{"addr": WALLET_A, "share": 10000}]
    assert result["addressShares"]["yieldTokens"] == []


@pytest.mark.asyncio
async def test_normalize_tax_shares_legacy_form(mock_context, legacy_form_json):
    result = json.loads(await server.normalize_tax_shares(context=mock_context, form_json=legacy_form_json))
    shares = result["shares"]
    # 4 : 1 : 2 of a 7% buy tax
    assert shares["treasuryShare"] == 5714
    assert shares["reflectionShare"] == 1429
    assert shares["yieldShare"] == 2857
    assert sum(shares.values()) == 10000
    assert result["taxBps"] == {"buyTaxBps": 700, "sellTaxBps": 900}


@pytest.mark.asyncio
async def test_build_forge_payload(mock_context, valid_form_json):
    result = json.loads(await server.build_forge_payload(context=mock_context, form_json=valid_form_json))
    assert result["address"] == config.FORGE_FACTORY_ADDRESS
    assert result["functionName"] == "forgeToken"
    assert result["value"] == config.CREATION_FEE_WEI
    assert result["renounceAfterForge"] is True

    forge_config = result["args"][0]
    assert forge_config["name"] == "Forge Token"
    assert forge_config["totalSupply"] == 10**24
    assert forge_config["buyTax"] == 600
    assert forge_config["sellTax"] == 600
    assert forge_config["treasuryShare"] == 8333
    assert forge_config["burnShare"] == 1667
    assert forge_config["treasuryWallets"] == [{"addr": WALLET_A, "share": 10000}]
    assert forge_config["maxTxAmount"] == 0
    assert forge_config["maxWalletAmount"] == 10**22
    assert forge_config["router"] == config.DEFAULT_ROUTER_ADDRESS


@pytest.mark.asyncio
async def test_build_forge_payload_invalid_form(mock_context):
    form_json = json.dumps({"name": "", "symbol": "", "allocations": {}})
    result = await server.build_forge_payload(context=mock_context, form_json=form_json)
    assert result == "Error: Token form is invalid - Token name is required; Token symbol is required"


@pytest.mark.asyncio
async def test_build_forge_payload_unexpected_error(mock_context, valid_form_json):
    with patch("token_forge.forge.build_forge_transaction") as mock_build:
        mock_build.side_effect = RuntimeError("boom")
        result = await server.build_forge_payload(context=mock_context, form_json=valid_form_json)
        assert result == "An unexpected server error occurred while building the forge payload."
        mock_build.assert_called_once()


@pytest.mark.asyncio
async def test_get_forged_token_address(mock_context):
    logs = [
        {"address": TOKEN_ADDRESS, "topics": ["0xddf252ad", "0x" + "0" * 64, "0x" + "0" * 24 + WALLET_A[2:]]},
        {"address": config.FORGE_FACTORY_ADDRESS, "topics": ["0xforged", "0x" + "0" * 63 + "1", "0x" + "0" * 24 + TOKEN_ADDRESS[2:]]},
    ]
    result = await server.get_forged_token_address(
        context=mock_context, logs_json=json.dumps(logs), factory_address=None
    )
    assert result == TOKEN_ADDRESS


@pytest.mark.asyncio
async def test_get_forged_token_address_not_found(mock_context):
    logs = [{"address": TOKEN_ADDRESS, "topics": []}]
    result = await server.get_forged_token_address(
        context=mock_context, logs_json=json.dumps(logs), factory_address=None
    )
    assert result == "No TokenForged event found in receipt logs."


@pytest.mark.asyncio
async def test_get_forged_token_address_bad_logs(mock_context):
    result = await server.get_forged_token_address(
        context=mock_context, logs_json=json.dumps({"logs": []}), factory_address=None
    )
    assert result == "Error: Logs JSON must be an array of log objects"


@pytest.mark.asyncio
async def test_build_forge_payload_rejects_huge_supply(mock_context):
    form_json = json.dumps({"name": "Huge", "symbol": "HUGE", "totalSupply": "1e999999999", "allocations": {}})
    result = await server.build_forge_payload(context=mock_context, form_json=form_json)
    assert result == "Error: Token form is invalid - Total supply exceeds the uint256 maximum"


@pytest.mark.asyncio
async def test_build_forge_payload_rejects_non_object_wallets(mock_context):
    form_json = json.dumps({"name": "Bad", "symbol": "BAD", "treasuryWallets": ["0xabc"]})
    result = await server.build_forge_payload(context=mock_context, form_json=form_json)
    assert result == "Error: Invalid token form - treasuryWallets must be an array of objects"
