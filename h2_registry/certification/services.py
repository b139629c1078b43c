import json
from hashlib import sha256

from eth_abi import encode
from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct
from eth_utils import keccak

from h2_registry.certification.schemas import ProductionClaim
from h2_registry.utils import normalise_address, normalise_certification_hash


def create_certification_hash(production_claim: ProductionClaim) -> str:
    """
    Digest an off-chain production claim into the certification hash that a
    city admin signs and the ledger consumes.

    A sorted-key JSON dump of the claim is used so that the same claim always
    yields the same digest, and the producer address is checksummed first so
    that casing differences cannot produce two hashes for one claim.

    Args:
        production_claim (ProductionClaim): The producer's claim

    Returns:
        str: 0x-prefixed sha256 hex digest, usable as a bytes32 value
    """
    claim = production_claim.model_dump(mode="json")
    claim["producer"] = normalise_address(production_claim.producer)
    canonical = json.dumps(claim, sort_keys=True, separators=(",", ":"))
    return "0x" + sha256(canonical.encode()).hexdigest()


def certification_message_hash(
    producer: str, amount: int, certification_hash: str | bytes
) -> bytes:
    """keccak256 of the ABI encoding of (address, uint256, bytes32)."""
    digest = normalise_certification_hash(certification_hash)
    payload = encode(
        ["address", "uint256", "bytes32"],
        [normalise_address(producer), amount, bytes.fromhex(digest[2:])],
    )
    return keccak(payload)


def certification_signable_message(
    producer: str, amount: int, certification_hash: str | bytes
) -> SignableMessage:
    """Wrap the certification message hash in the EIP-191 signed-message prefix."""
    return encode_defunct(
        primitive=certification_message_hash(producer, amount, certification_hash)
    )


def sign_certification(
    producer: str, amount: int, certification_hash: str | bytes, private_key: str
) -> str:
    """Sign a certification as a city admin. Returns the 65-byte signature as hex."""
    signable = certification_signable_message(producer, amount, certification_hash)
    signed = Account.sign_message(signable, private_key=private_key)
    return "0x" + bytes(signed.signature).hex()
