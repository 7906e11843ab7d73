"""
Library linking for unlinked contract bytecode.

Two placeholder forms are recognised:
- legacy: ``__<Name>`` padded with underscores to 40 characters
- solc >= 0.5: ``__$<first 34 hex chars of keccak256(sourcePath:Name)>$__``
"""

import re
from typing import List, Optional

from web3 import Web3

from .exceptions import LinkError

PLACEHOLDER_LENGTH = 40
PLACEHOLDER_RE = re.compile(r"__[\w$]{38}")


def legacy_placeholder(library_name: str) -> str:
    return ("__" + library_name[:36]).ljust(PLACEHOLDER_LENGTH, "_")


def hashed_placeholder(fully_qualified_name: str) -> str:
    digest = Web3.keccak(text=fully_qualified_name).hex()
    if digest.startswith("0x"):
        digest = digest[2:]
    return f"__${digest[:34]}$__"


def _normalize_address(address: str) -> str:
    if not Web3.is_address(address):
        raise LinkError(f"Invalid library address: {address!r}")
    return address.lower()[2:] if address.lower().startswith("0x") else address.lower()


def link_bytecode(bytecode: str, library_name: str, address: str,
                  source_path: Optional[str] = None) -> str:
    """Replaces every placeholder for ``library_name`` with ``address``."""
    hex_address = _normalize_address(address)

    linked = bytecode.replace(legacy_placeholder(library_name), hex_address)
    if source_path:
        linked = linked.replace(hashed_placeholder(f"{source_path}:{library_name}"), hex_address)
    return linked


def unlinked_libraries(bytecode: str) -> List[str]:
    """Names (or hashes) of libraries still referenced by placeholders."""
    names: List[str] = []
    for match in PLACEHOLDER_RE.finditer(bytecode):
        name = match.group(0).strip("_")
        if name not in names:
            names.append(name)
    return names
