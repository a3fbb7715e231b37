"""
Seed phrase and secret key handling for Solana wallets.

Phrase -> BIP-39 seed -> SLIP-0010 ed25519 derivation along
m/44'/501'/0'/0' -> 32-byte private key -> Solana keypair.
"""

import logging
from collections import namedtuple

import base58
import nacl.signing
from bip_utils import (
    Bip32Slip10Ed25519,
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
)
from solders.keypair import Keypair

from wallet_errors import InvalidMnemonic, MalformedSecretKey

logger = logging.getLogger(__name__)

# Phantom / Solflare / solana-keygen path
SOLANA_DERIVATION_PATH = "m/44'/501'/0'/0'"

MNEMONIC_WORD_COUNTS = (12, 15, 18, 21, 24)
SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64

DerivedKey = namedtuple("DerivedKey", ["key", "chain_code"])


def _normalize(phrase: str) -> str:
    return " ".join(phrase.split())


def validate_mnemonic(phrase: str) -> bool:
    """Check words against the English wordlist and verify the checksum."""
    if not isinstance(phrase, str):
        return False
    phrase = _normalize(phrase)
    if len(phrase.split(" ")) not in MNEMONIC_WORD_COUNTS:
        return False
    return Bip39MnemonicValidator().IsValid(phrase)


def derive_seed(phrase: str, passphrase: str = "") -> bytes:
    """Return the 64-byte BIP-39 seed for a validated phrase."""
    if not validate_mnemonic(phrase):
        raise InvalidMnemonic("Invalid seed phrase")
    return bytes(Bip39SeedGenerator(_normalize(phrase)).Generate(passphrase))


def derive_path(path: str, seed_hex: str) -> DerivedKey:
    """Walk a fully hardened SLIP-0010 ed25519 path over a hex-encoded seed."""
    segments = path.split("/")
    if segments[0] != "m":
        raise ValueError(f"Derivation path must start at the master key: {path!r}")
    for segment in segments[1:]:
        if not segment.endswith("'"):
            raise ValueError(f"ed25519 derivation only supports hardened segments, got {segment!r}")

    bip32_ctx = Bip32Slip10Ed25519.FromSeed(bytes.fromhex(seed_hex))
    derived = bip32_ctx.DerivePath(path)
    return DerivedKey(
        key=derived.PrivateKey().Raw().ToBytes(),
        chain_code=derived.ChainCode().ToBytes(),
    )


def keypair_from_seed_bytes(material: bytes) -> Keypair:
    """Expand a 32-byte ed25519 seed into a full Solana keypair."""
    material = bytes(material)
    if len(material) != SEED_LENGTH:
        raise MalformedSecretKey(f"Expected {SEED_LENGTH} bytes of key material, got {len(material)}")

    signing_key = nacl.signing.SigningKey(material)
    public_key_32 = signing_key.verify_key.encode()
    return Keypair.from_bytes(material + public_key_32)


def keypair_from_seed_phrase(phrase: str, passphrase: str = "") -> Keypair:
    seed = derive_seed(phrase, passphrase)
    derived = derive_path(SOLANA_DERIVATION_PATH, seed.hex())
    return keypair_from_seed_bytes(derived.key[:SEED_LENGTH])


def keypair_from_encoded_secret(encoded: str) -> Keypair:
    """Restore a keypair from a base58 64-byte secret key."""
    try:
        secret_key = base58.b58decode(encoded.strip())
    except ValueError as exc:
        raise MalformedSecretKey(f"Secret key is not valid base58: {exc}") from exc

    if len(secret_key) != SECRET_KEY_LENGTH:
        raise MalformedSecretKey(
            f"Invalid key length: {len(secret_key)} bytes, expected {SECRET_KEY_LENGTH}"
        )

    expected_public = nacl.signing.SigningKey(secret_key[:SEED_LENGTH]).verify_key.encode()
    if expected_public != secret_key[SEED_LENGTH:]:
        raise MalformedSecretKey("Public half of the secret key does not match its private half")

    return Keypair.from_bytes(secret_key)


def encode_secret(keypair: Keypair) -> str:
    return base58.b58encode(bytes(keypair)).decode()


def create_wallet() -> Keypair:
    return Keypair()


def generate_mnemonic(words: int = 12) -> str:
    if words not in MNEMONIC_WORD_COUNTS:
        raise ValueError(f"Word count must be one of {MNEMONIC_WORD_COUNTS}, got {words}")
    return str(Bip39MnemonicGenerator().FromWordsNumber(Bip39WordsNum(words)))


def load_wallet(material: str) -> Keypair:
    """Detects if input is a base58 secret key or a 12-24 word mnemonic."""
    words = material.strip().split()

    if len(words) in MNEMONIC_WORD_COUNTS:
        logger.debug("Mnemonic detected, deriving key along %s", SOLANA_DERIVATION_PATH)
        return keypair_from_seed_phrase(material)

    if len(words) > 1:
        raise InvalidMnemonic(f"Seed phrase must have {MNEMONIC_WORD_COUNTS} words, got {len(words)}")

    return keypair_from_encoded_secret(material)
