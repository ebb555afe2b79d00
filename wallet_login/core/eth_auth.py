"""
Ethereum Wallet Authentication Utilities

This module handles the Ethereum-specific cryptographic operations for wallet authentication.
It implements signature verification for messages signed with `personal_sign` (EIP-191).

Authentication Flow:
1. Backend hands out a random nonce for the address (see nonce.py)
2. Frontend signs the nonce text with the wallet (MetaMask personal_sign)
3. Frontend sends: address, nonce, signature
4. Backend recovers the signer: recover_address()
   - Wraps the nonce as "\\x19Ethereum Signed Message:\\n<len><nonce>" and hashes it
   - Decodes the 65-byte {r, s, v} signature and normalizes v
   - Recovers the public key and derives its account address
5. Backend compares the recovered address with the claimed one: verify_signature()

The signature verification uses:
- secp256k1 public key recovery (Ethereum's signature scheme)
- eth_account library for message encoding and key recovery
"""

import binascii
import re

from eth_account import Account
from eth_account.messages import encode_defunct

from wallet_login.core.errors import SignatureFormatError, ValidationError


ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")
NONCE_PATTERN = re.compile(r"[0-9]+")

SIGNATURE_LENGTH = 65  # r(32) + s(32) + v(1)
RECOVERY_ID_OFFSET = 64
LEGACY_V_OFFSET = 27


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and ADDRESS_PATTERN.fullmatch(address) is not None


def is_valid_nonce(nonce: str) -> bool:
    return isinstance(nonce, str) and NONCE_PATTERN.fullmatch(nonce) is not None


def normalize_address(address: str) -> str:
    """
    Validate an account address and return its canonical (lowercase) form.

    Raises:
        ValidationError: If the address is not 0x followed by 40 hex characters
    """
    if not is_valid_address(address):
        raise ValidationError("Invalid address")
    return address.lower()


def _decode_hex(value: str) -> bytes:
    """Helper: Decode hex string (optionally 0x-prefixed) to bytes."""
    value = value.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    return binascii.unhexlify(value.encode())


def decode_signature(signature: str) -> tuple[int, int, int]:
    """
    Decode a hex signature into (v, r, s) with v normalized to 0 or 1.

    Wallets emit the legacy recovery id 27/28; the recovery primitive wants 0/1.
    A raw 0/1 is accepted as-is, which is what some hardware wallets produce.

    Raises:
        SignatureFormatError: If the value is not hex, not 65 bytes, or v is out of range
    """
    try:
        raw = _decode_hex(signature)
    except (binascii.Error, ValueError):
        raise SignatureFormatError("Signature must be hex encoded")

    if len(raw) != SIGNATURE_LENGTH:
        raise SignatureFormatError(f"Signature must be {SIGNATURE_LENGTH} bytes")

    v = raw[RECOVERY_ID_OFFSET]
    if v >= LEGACY_V_OFFSET:
        v -= LEGACY_V_OFFSET
    if v not in (0, 1):
        raise SignatureFormatError("Invalid recovery id")

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    return v, r, s


def recover_address(message: str, signature: str) -> str:
    """
    Recover the account address that personal-signed ``message``.

    Args:
        message: The text that was signed (here: the nonce string)
        signature: Hex-encoded 65-byte {r, s, v} signature

    Returns:
        The recovered address, lowercased

    Raises:
        SignatureFormatError: If the signature is malformed or no public key can be recovered
    """
    v, r, s = decode_signature(signature)
    signable = encode_defunct(text=message)
    try:
        recovered = Account.recover_message(signable, vrs=(v, r, s))
    except Exception as e:
        # eth_keys raises BadSignature / ValidationError for points off the curve
        raise SignatureFormatError("Signature does not recover to a public key") from e
    return recovered.lower()


def verify_signature(address: str, message: str, signature: str) -> bool:
    """
    Check that ``signature`` over ``message`` was produced by ``address``.

    This is the main function called during sign-in, after the nonce check.

    Example:
        if verify_signature(
            address="0x52908400098527886e0f7030069857d2e4169ee7",
            message="1234567890",
            signature="0x9f3c...1b",
        ):
            # rotate the nonce and issue a token

    Raises:
        SignatureFormatError: If the signature cannot be decoded or recovered
    """
    return recover_address(message, signature) == address.lower()
