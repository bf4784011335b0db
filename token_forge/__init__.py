"""
Token Forge Package Initialization

This package prepares fee-on-transfer token deployments for a token-creation ("forge")
factory. It validates a token form's tax configuration and turns it into the exact,
integer basis-point payload the factory contract accepts.

The package includes:
- Pydantic models for token forms, tax allocations and the ForgeTokenConfig struct
- The tax allocation engine (totals, validation, largest-remainder normalization)
- Forge payload building and receipt parsing
- Environment-driven configuration
- Custom error handling
- MCP server implementation for easy integration
"""
