"""
Ledger gateway package.

Keep package import side-effects to a minimum to avoid circular imports.
Do not import factory/adapters here.
"""

__all__ = [
    "abi",
    "events",
    "factory",
    "interface",
    "mock_adapter",
    "models",
    "web3_adapter",
]
