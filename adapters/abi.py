"""
Minimal ABI call encoding for the contract reads used by the consensus check:
4-byte selector + 32-byte left-padded arguments (address or uint256).
"""
from typing import Any, Dict, Sequence

FUNCTION_SELECTORS: Dict[str, str] = {
    # ERC20 & ERC721 common
    "name": "0x06fdde03",
    "symbol": "0x95d89b41",
    "totalSupply": "0x18160ddd",
    # ERC20
    "balanceOf": "0x70a08231",  # balanceOf(address)
    "decimals": "0x313ce567",
    # ERC721
    "ownerOf": "0x6352211e",  # ownerOf(uint256)
    "tokenURI": "0xc87b56dd",  # tokenURI(uint256)
    # ERC1155
    "uri": "0x0e89341c",  # uri(uint256)
}

# Methods returning ABI-encoded strings; these are not decoded, only checked for presence
STRING_METHODS = frozenset({"name", "symbol", "tokenURI", "uri"})

WORD_HEX = 64


def encode_param(param: Any) -> str:
    """Encode an address ("0x…") or non-negative integer as one 32-byte word."""
    if isinstance(param, bool):
        raise ValueError(f"Unsupported ABI parameter: {param!r}")
    if isinstance(param, str) and param.startswith("0x"):
        body = param[2:]
        if len(body) > WORD_HEX:
            raise ValueError(f"Address too long: {param}")
        int(body or "0", 16)  # reject non-hex early
        return body.lower().rjust(WORD_HEX, "0")
    if isinstance(param, (int, str)):
        n = int(param)
        if n < 0:
            raise ValueError(f"Negative uint256: {param}")
        return format(n, "0{}x".format(WORD_HEX))
    raise ValueError(f"Unsupported ABI parameter: {param!r}")


def encode_function_call(method: str, params: Sequence[Any] = ()) -> str:
    selector = FUNCTION_SELECTORS.get(method)
    if selector is None:
        raise ValueError(f"Unknown method: {method}")
    return selector + "".join(encode_param(p) for p in params)
