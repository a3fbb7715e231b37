"""
Client for the Anchor token-2022 example program.

Instructions are encoded the way Anchor does it: an 8-byte discriminator,
sha256("global:<method>")[:8], followed by borsh-encoded arguments.
"""

import hashlib
import logging

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID

from token_client import encode_u64
from wallet_ops import rpc_call, send_and_confirm, to_pubkey

logger = logging.getLogger(__name__)

TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")

MINT_SEED = b"token-2022-token"


def discriminator(method: str) -> bytes:
    return hashlib.sha256(f"global:{method}".encode()).digest()[:8]


def encode_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return len(raw).to_bytes(4, "little") + raw


def find_mint_address(program_id: Pubkey, owner: Pubkey, token_name: str) -> Pubkey:
    mint, _bump = Pubkey.find_program_address([MINT_SEED, bytes(owner), token_name.encode("utf-8")], program_id)
    return mint


def find_associated_token_address(owner: Pubkey, mint: Pubkey, token_program_id: Pubkey = TOKEN_2022_PROGRAM_ID) -> Pubkey:
    ata, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program_id), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM_ID
    )
    return ata


# ---------------- INSTRUCTIONS ----------------
def create_token_instruction(program_id: Pubkey, signer: Pubkey, token_name: str) -> Instruction:
    mint = find_mint_address(program_id, signer, token_name)
    accounts = [
        AccountMeta(signer, True, True),
        AccountMeta(mint, False, True),
        AccountMeta(SYSTEM_PROGRAM_ID, False, False),
        AccountMeta(TOKEN_2022_PROGRAM_ID, False, False),
    ]
    data = discriminator("create_token") + encode_string(token_name)
    return Instruction(program_id, data, accounts)


def create_associated_token_account_instruction(program_id: Pubkey, signer: Pubkey, mint: Pubkey) -> Instruction:
    accounts = [
        AccountMeta(signer, True, True),
        AccountMeta(mint, False, False),
        AccountMeta(find_associated_token_address(signer, mint), False, True),
        AccountMeta(SYSTEM_PROGRAM_ID, False, False),
        AccountMeta(TOKEN_2022_PROGRAM_ID, False, False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, False, False),
    ]
    return Instruction(program_id, discriminator("create_associated_token_account"), accounts)


def mint_token_instruction(program_id: Pubkey, signer: Pubkey, mint: Pubkey, receiver: Pubkey, amount: int) -> Instruction:
    accounts = [
        AccountMeta(mint, False, True),
        AccountMeta(signer, True, False),
        AccountMeta(receiver, False, True),
        AccountMeta(TOKEN_2022_PROGRAM_ID, False, False),
    ]
    return Instruction(program_id, discriminator("mint_token") + encode_u64(amount), accounts)


def transfer_token_instruction(program_id: Pubkey, signer: Pubkey, mint: Pubkey, source: Pubkey, to: Pubkey, amount: int) -> Instruction:
    # to_ata is created by the program (init), so the receiver needs no setup
    accounts = [
        AccountMeta(source, False, True),
        AccountMeta(to, False, False),
        AccountMeta(find_associated_token_address(to, mint), False, True),
        AccountMeta(mint, False, True),
        AccountMeta(TOKEN_2022_PROGRAM_ID, False, False),
        AccountMeta(SYSTEM_PROGRAM_ID, False, False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, False, False),
        AccountMeta(signer, True, True),
    ]
    return Instruction(program_id, discriminator("transfer_token") + encode_u64(amount), accounts)


class TokenProgramClient:
    """Drives one named token-2022 mint owned by `wallet`."""

    def __init__(self, client, program_id, wallet: Keypair, token_name: str = "TestToken"):
        self.client = client
        self.program_id = to_pubkey(program_id)
        self.wallet = wallet
        self.token_name = token_name

    @property
    def mint(self) -> Pubkey:
        return find_mint_address(self.program_id, self.wallet.pubkey(), self.token_name)

    @property
    def payer_ata(self) -> Pubkey:
        return find_associated_token_address(self.wallet.pubkey(), self.mint)

    async def _send(self, ix: Instruction) -> str:
        signature = await send_and_confirm(self.client, [ix], self.wallet)
        logger.info("Your transaction signature %s", signature)
        return signature

    @rpc_call
    async def create_token(self) -> str:
        return await self._send(create_token_instruction(self.program_id, self.wallet.pubkey(), self.token_name))

    @rpc_call
    async def create_associated_token_account(self) -> str:
        return await self._send(
            create_associated_token_account_instruction(self.program_id, self.wallet.pubkey(), self.mint)
        )

    @rpc_call
    async def mint_token(self, amount: int) -> str:
        return await self._send(
            mint_token_instruction(self.program_id, self.wallet.pubkey(), self.mint, self.payer_ata, amount)
        )

    @rpc_call
    async def transfer_token(self, to, amount: int) -> str:
        return await self._send(
            transfer_token_instruction(
                self.program_id, self.wallet.pubkey(), self.mint, self.payer_ata, to_pubkey(to), amount
            )
        )
