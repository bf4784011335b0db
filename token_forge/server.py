"""
Token Forge Server - MCP Server Implementation

This module exposes the token forge's tax allocation engine and payload builder as MCP
tools, so an agent or a thin web backend can check a token form and get back the exact
payload for the factory's forgeToken call.

Key Features:
- Tax totals per mechanism with the buy/sell match summary shown next to each section
- Complete, ordered validation messages for a form
- Normalized mechanism shares and per-address shares in basis points
- ForgeTransaction payload (factory, struct argument, creation fee)
- Created token address lookup from receipt logs

Forms are passed as JSON strings in either the current shape (with an "allocations"
object) or the web client's legacy flat shape. Every tool returns a JSON string on
success and a short "Error: ..." message otherwise; details go to the log.

The server never signs or sends transactions: the caller's wallet layer does that with
the payload returned by build_forge_payload.
"""

import json
import time
from typing import Any, Optional

from pydantic import Field, ValidationError

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.utilities.logging import get_logger

from token_forge import allocation
from token_forge import forge
from token_forge.errors import InvalidForgeConfigError, InvalidFormDataError
from token_forge.schemas import TokenFormData

# Constants
MAX_FORM_JSON_LENGTH = 20000
MAX_LOGS_JSON_LENGTH = 200000

logger = get_logger(__name__)

# --- Server Setup ---
mcp = FastMCP(name="Token Forge Server")


def _load_json(payload: str, max_length: int, what: str) -> Any:
    if not payload or not isinstance(payload, str):
        raise InvalidFormDataError(f"{what} must be a non-empty JSON string")
    if len(payload) > max_length:
        raise InvalidFormDataError(f"{what} is too large (max {max_length} characters)")
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise InvalidFormDataError(f"Invalid JSON format provided for {what}: {e.msg}")


def load_form(form_json: str) -> TokenFormData:
    """
    Decodes a token form from a JSON string.

    Raises:
        InvalidFormDataError: If the JSON is malformed, is not an object, or does not
            fit the form schema.
    """
    data = _load_json(form_json, MAX_FORM_JSON_LENGTH, "Form JSON")
    if not isinstance(data, dict):
        raise InvalidFormDataError("Form JSON must be an object")
    try:
        return forge.parse_form(data)
    except ValidationError as e:
        raise InvalidFormDataError(f"Invalid token form - {e.error_count()} field error(s): "
                                   f"{'; '.join(err['msg'] for err in e.errors())}")


def log_tool_error(tool: str, error: Exception, duration: float) -> None:
    """Log a rejected tool call with structured information."""
    logger.error(f"{tool} failed: {error}, duration: {duration:.3f}s")


# --- MCP Tools ---

@mcp.tool()
async def get_default_form(context: Context) -> str:
    """Get a fresh token form with the platform defaults."""
    return forge.default_form_data().model_dump_json(by_alias=True, indent=2)


@mcp.tool()
async def compute_tax_totals(
    context: Context,
    form_json: str = Field(..., description="The token form as a JSON string."),
) -> str:
    """Get buy/sell tax totals (percent) per mechanism and overall."""
    start_time = time.time()
    try:
        form = load_form(form_json)
        totals = allocation.compute_totals(form.allocations)
        return totals.model_dump_json(by_alias=True, indent=2)
    except InvalidFormDataError as e:
        log_tool_error("compute_tax_totals", e, time.time() - start_time)
        return f"Error: {e}"
    except Exception as e:
        logger.exception(f"Unexpected error computing tax totals: {e}")
        return "An unexpected error occurred while computing tax totals."


@mcp.tool()
async def validate_token_form(
    context: Context,
    form_json: str = Field(..., description="The token form as a JSON string."),
) -> str:
    """Validate a token form and list every problem found, in a stable order."""
    start_time = time.time()
    try:
        form = load_form(form_json)
        result = allocation.validate_form(form)
        if not result.valid:
            logger.info(f"Token form '{form.symbol}' has {len(result.errors)} validation error(s)")
        return result.model_dump_json(by_alias=True, indent=2)
    except InvalidFormDataError as e:
        log_tool_error("validate_token_form", e, time.time() - start_time)
        return f"Error: {e}"
    except Exception as e:
        logger.exception(f"Unexpected error validating token form: {e}")
        return "An unexpected error occurred while validating the token form."


@mcp.tool()
async def normalize_tax_shares(
    context: Context,
    form_json: str = Field(..., description="The token form as a JSON string."),
) -> str:
    """
    Get the basis-point breakdown for a form.

    Returns the tax rates in bps, each mechanism's share of the collected tax (summing
    to 10000) and each mechanism's per-address shares. The form is not validated here;
    use validate_token_form before relying on the numbers.
    """
    start_time = time.time()
    try:
        form = load_form(form_json)
        breakdown = {
            "taxBps": allocation.build_basis_point_tax_totals(form.allocations).model_dump(by_alias=True),
            "shares": allocation.normalize(form.allocations).model_dump(by_alias=True),
            "addressShares": allocation.build_address_share_lists(form.allocations).model_dump(by_alias=True),
        }
        return json.dumps(breakdown, indent=2)
    except InvalidFormDataError as e:
        log_tool_error("normalize_tax_shares", e, time.time() - start_time)
        return f"Error: {e}"
    except Exception as e:
        logger.exception(f"Unexpected error normalizing tax shares: {e}")
        return "An unexpected error occurred while normalizing tax shares."


@mcp.tool()
async def build_forge_payload(
    context: Context,
    form_json: str = Field(..., description="The token form as a JSON string."),
) -> str:
    """
    Build the forgeToken transaction payload for a valid form.

    The payload holds the factory address, the ForgeTokenConfig struct (camelCase, as
    in the contract ABI), the creation fee in wei and whether ownership should be
    renounced after the token is created. Nothing is sent on-chain.
    """
    start_time = time.time()
    try:
        form = load_form(form_json)
        transaction = forge.build_forge_transaction(form)
        logger.info(f"Forge payload built for '{form.symbol}' in {time.time() - start_time:.3f}s")
        return transaction.model_dump_json(by_alias=True, indent=2)
    except InvalidFormDataError as e:
        log_tool_error("build_forge_payload", e, time.time() - start_time)
        return f"Error: {e}"
    except InvalidForgeConfigError as e:
        log_tool_error("build_forge_payload", e, time.time() - start_time)
        return "Error: Token form is invalid - " + "; ".join(e.errors)
    except Exception as e:
        logger.exception(f"Unexpected error building forge payload: {e}")
        return "An unexpected server error occurred while building the forge payload."


@mcp.tool()
async def get_forged_token_address(
    context: Context,
    logs_json: str = Field(..., description="The forgeToken receipt logs as a JSON array."),
    factory_address: Optional[str] = Field(None, description="Factory address (defaults to the configured factory)."),
) -> str:
    """Get the created token's address from a forgeToken transaction receipt."""
    start_time = time.time()
    try:
        logs = _load_json(logs_json, MAX_LOGS_JSON_LENGTH, "Logs JSON")
        if not isinstance(logs, list) or not all(isinstance(log, dict) for log in logs):
            raise InvalidFormDataError("Logs JSON must be an array of log objects")
        token_address = forge.extract_forged_token_address(logs, factory_address)
        if token_address is None:
            logger.warning("No TokenForged event found in receipt logs")
            return "No TokenForged event found in receipt logs."
        return token_address
    except InvalidFormDataError as e:
        log_tool_error("get_forged_token_address", e, time.time() - start_time)
        return f"Error: {e}"
    except Exception as e:
        logger.exception(f"Unexpected error reading receipt logs: {e}")
        return "An unexpected error occurred while reading the receipt logs."


def main() -> None:
    logger.info("Starting Token Forge MCP Server...")
    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")


# --- Main Execution ---
if __name__ == "__main__":
    main()
