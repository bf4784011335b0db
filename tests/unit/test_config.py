import pytest

from token_forge import config
from token_forge.errors import ConfigurationError


def test_contract_constants():
    assert config.BASIS_POINTS == 10000
    assert config.MAX_TAX_BPS == 2500
    assert config.CREATION_FEE_WEI == config.CREATION_FEE_PLS * 10**18


def test_get_env_address(monkeypatch):
    monkeypatch.setenv("TEST_FORGE_ADDRESS", " 0x" + "A" * 40 + " ")
    assert config._get_env_address("TEST_FORGE_ADDRESS", config.ZERO_ADDRESS) == "0x" + "A" * 40

    monkeypatch.setenv("TEST_FORGE_ADDRESS", "0x1234")
    with pytest.raises(ConfigurationError, match="TEST_FORGE_ADDRESS"):
        config._get_env_address("TEST_FORGE_ADDRESS", config.ZERO_ADDRESS)


def test_get_env_address_default(monkeypatch):
    monkeypatch.delenv("TEST_FORGE_ADDRESS", raising=False)
    assert config._get_env_address("TEST_FORGE_ADDRESS", config.ZERO_ADDRESS) == config.ZERO_ADDRESS


def test_get_env_int_bounds(monkeypatch):
    monkeypatch.setenv("TEST_FORGE_DECIMALS", "19")
    with pytest.raises(ConfigurationError, match="<= 18"):
        config._get_env_int("TEST_FORGE_DECIMALS", 18, min_val=0, max_val=18)

    monkeypatch.setenv("TEST_FORGE_DECIMALS", "eighteen")
    with pytest.raises(ConfigurationError, match="valid integer"):
        config._get_env_int("TEST_FORGE_DECIMALS", 18)

    monkeypatch.setenv("TEST_FORGE_DECIMALS", "9")
    assert config._get_env_int("TEST_FORGE_DECIMALS", 18, min_val=0, max_val=18) == 9


def test_get_env_str_required(monkeypatch):
    monkeypatch.setenv("TEST_FORGE_SUPPLY", "")
    with pytest.raises(ConfigurationError, match="TEST_FORGE_SUPPLY"):
        config._get_env_str("TEST_FORGE_SUPPLY", "1", required=True)
