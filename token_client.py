"""
Client for the minimal token program (initialize / mint / transfer / burn).

Instruction data is a 1-byte variant tag followed by little-endian operands:
    0 Initialize  u8 decimals, u64 total_supply
    1 Mint        u64 amount
    2 Transfer    u64 amount
    3 Burn        u64 amount
"""

import logging
from enum import IntEnum

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from wallet_ops import U64_MAX, get_minimum_balance_for_rent_exemption, rpc_call, send_and_confirm, to_pubkey

logger = logging.getLogger(__name__)

# decimals (1) + total supply (8) + mint authority (32)
MINT_ACCOUNT_SIZE = 41


class TokenInstruction(IntEnum):
    INITIALIZE = 0
    MINT = 1
    TRANSFER = 2
    BURN = 3


def encode_u8(value: int) -> bytes:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"u8 out of range: {value}")
    return value.to_bytes(1, "little")


def encode_u64(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"u64 out of range: {value}")
    return value.to_bytes(8, "little")


def initialize_instruction(program_id: Pubkey, mint: Pubkey, mint_authority: Pubkey, decimals: int, total_supply: int) -> Instruction:
    data = bytes([TokenInstruction.INITIALIZE]) + encode_u8(decimals) + encode_u64(total_supply)
    accounts = [
        AccountMeta(mint, True, True),
        AccountMeta(mint_authority, True, False),
    ]
    return Instruction(program_id, data, accounts)


def mint_instruction(program_id: Pubkey, mint: Pubkey, mint_authority: Pubkey, destination: Pubkey, amount: int) -> Instruction:
    data = bytes([TokenInstruction.MINT]) + encode_u64(amount)
    accounts = [
        AccountMeta(mint, False, True),
        AccountMeta(mint_authority, True, False),
        AccountMeta(destination, False, True),
    ]
    return Instruction(program_id, data, accounts)


def transfer_instruction(program_id: Pubkey, source: Pubkey, destination: Pubkey, owner: Pubkey, amount: int) -> Instruction:
    data = bytes([TokenInstruction.TRANSFER]) + encode_u64(amount)
    accounts = [
        AccountMeta(source, False, True),
        AccountMeta(destination, False, True),
        AccountMeta(owner, True, False),
    ]
    return Instruction(program_id, data, accounts)


def burn_instruction(program_id: Pubkey, account: Pubkey, owner: Pubkey, amount: int) -> Instruction:
    data = bytes([TokenInstruction.BURN]) + encode_u64(amount)
    accounts = [
        AccountMeta(account, False, True),
        AccountMeta(owner, True, False),
    ]
    return Instruction(program_id, data, accounts)


class TokenClient:
    """Sends token program instructions through an open AsyncClient."""

    def __init__(self, client, program_id, payer: Keypair):
        self.client = client
        self.program_id = to_pubkey(program_id)
        self.payer = payer

    @rpc_call
    async def initialize_token(self, decimals: int = 9, total_supply: int = 1_000_000):
        """Create and initialize a mint account.

        Returns:
            (mint_account, mint_authority, signature)
        """
        mint_account = Keypair()
        mint_authority = Keypair()

        lamports = await get_minimum_balance_for_rent_exemption(MINT_ACCOUNT_SIZE, client=self.client)
        create_ix = create_account(
            CreateAccountParams(
                from_pubkey=self.payer.pubkey(),
                to_pubkey=mint_account.pubkey(),
                lamports=lamports,
                space=MINT_ACCOUNT_SIZE,
                owner=self.program_id,
            )
        )
        init_ix = initialize_instruction(
            self.program_id, mint_account.pubkey(), mint_authority.pubkey(), decimals, total_supply
        )

        signature = await send_and_confirm(
            self.client, [create_ix, init_ix], self.payer, [mint_account, mint_authority]
        )
        logger.info("Initialized mint %s", mint_account.pubkey())
        return mint_account, mint_authority, signature

    @rpc_call
    async def mint_tokens(self, mint, mint_authority: Keypair, destination, amount: int) -> str:
        ix = mint_instruction(self.program_id, to_pubkey(mint), mint_authority.pubkey(), to_pubkey(destination), amount)
        return await send_and_confirm(self.client, [ix], self.payer, [mint_authority])

    @rpc_call
    async def transfer_tokens(self, source, destination, owner: Keypair, amount: int) -> str:
        ix = transfer_instruction(self.program_id, to_pubkey(source), to_pubkey(destination), owner.pubkey(), amount)
        return await send_and_confirm(self.client, [ix], self.payer, [owner])

    @rpc_call
    async def burn_tokens(self, account, owner: Keypair, amount: int) -> str:
        ix = burn_instruction(self.program_id, to_pubkey(account), owner.pubkey(), amount)
        return await send_and_confirm(self.client, [ix], self.payer, [owner])
