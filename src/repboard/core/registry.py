"""
ERC-8004 Reputation Registry contract interface.

Provides the deployed registry address, chain ids, the minimal ABI (as
Python dicts) of the read-only functions the aggregator calls, and their
4-byte function selectors.

Reference: https://eips.ethereum.org/EIPS/eip-8004
"""

from __future__ import annotations

from Crypto.Hash import keccak


# ───────────────────────────────────────────────────────────────────
# Deployed Contract Addresses
# ───────────────────────────────────────────────────────────────────

DEFAULT_CHAIN = "base"

REPUTATION_REGISTRY_ADDRESSES: dict[str, str] = {
    "base": "0x8004BAa17C55a88189AE136b182e5fdA19dE9b63",
}

DEFAULT_REGISTRY_ADDRESS = REPUTATION_REGISTRY_ADDRESSES[DEFAULT_CHAIN]

CHAIN_IDS: dict[str, int] = {
    "eth": 1,
    "eth-sepolia": 11155111,
    "base": 8453,
    "base-sepolia": 84532,
}


# ───────────────────────────────────────────────────────────────────
# Contract ABI (read functions only)
# ───────────────────────────────────────────────────────────────────

REPUTATION_REGISTRY_ABI = [
    # read: getReputation(address) → uint256
    {
        "name": "getReputation",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "agent", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    # read: getFeedback(address) → (address, int8, string, uint256)[]
    {
        "name": "getFeedback",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "agent", "type": "address"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple[]",
                "components": [
                    {"name": "from", "type": "address"},
                    {"name": "score", "type": "int8"},
                    {"name": "comment", "type": "string"},
                    {"name": "timestamp", "type": "uint256"},
                ],
            }
        ],
    },
    # read: getAgentCount() → uint256
    {
        "name": "getAgentCount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    # read: getAgentByIndex(uint256) → address
    {
        "name": "getAgentByIndex",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "index", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
]


# ───────────────────────────────────────────────────────────────────
# Function Selectors
# ───────────────────────────────────────────────────────────────────

def _canonical_type(param: dict) -> str:
    """Render an ABI parameter type the way signatures spell it."""
    kind = param["type"]
    if kind.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param["components"])
        return f"({inner}){kind[len('tuple'):]}"
    return kind


def function_signature(entry: dict) -> str:
    """Build e.g. `getReputation(address)` from an ABI entry."""
    args = ",".join(_canonical_type(p) for p in entry["inputs"])
    return f"{entry['name']}({args})"


def function_selector(signature: str) -> str:
    """First 4 bytes of keccak256(signature), hex without 0x."""
    hasher = keccak.new(digest_bits=256)
    hasher.update(signature.encode("utf-8"))
    return hasher.hexdigest()[:8]


FUNCTION_SELECTORS: dict[str, str] = {
    entry["name"]: function_selector(function_signature(entry))
    for entry in REPUTATION_REGISTRY_ABI
}


def to_checksum_address(address: str) -> str:
    """EIP-55 mixed-case form of a 20-byte hex address."""
    addr = address.lower().removeprefix("0x")
    hasher = keccak.new(digest_bits=256)
    hasher.update(addr.encode("ascii"))
    digest = hasher.hexdigest()
    return "0x" + "".join(
        c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(addr)
    )


def get_reputation_registry(chain: str) -> str | None:
    """Get Reputation Registry address for a chain."""
    return REPUTATION_REGISTRY_ADDRESSES.get(chain.lower())


def get_chain_id(chain: str) -> int | None:
    """Get chain ID for a chain name."""
    return CHAIN_IDS.get(chain.lower())


__all__ = [
    "DEFAULT_CHAIN",
    "DEFAULT_REGISTRY_ADDRESS",
    "REPUTATION_REGISTRY_ADDRESSES",
    "REPUTATION_REGISTRY_ABI",
    "CHAIN_IDS",
    "FUNCTION_SELECTORS",
    "function_signature",
    "function_selector",
    "to_checksum_address",
    "get_reputation_registry",
    "get_chain_id",
]
