"""Tests for the Anchor token-2022 program client."""

import asyncio
import hashlib

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from conftest import FakeClient
from token_program import (
    TOKEN_2022_PROGRAM_ID,
    TokenProgramClient,
    create_associated_token_account_instruction,
    create_token_instruction,
    discriminator,
    encode_string,
    find_associated_token_address,
    find_mint_address,
    mint_token_instruction,
    transfer_token_instruction,
)

PROGRAM_ID = Keypair().pubkey()


def test_discriminator_prefix():
    assert discriminator("create_token") == hashlib.sha256(b"global:create_token").digest()[:8]
    assert discriminator("create_token") != discriminator("mint_token")


def test_encode_string_is_borsh():
    assert encode_string("TestToken") == (9).to_bytes(4, "little") + b"TestToken"


def test_associated_address_matches_spl_for_classic_program():
    owner, mint = Keypair().pubkey(), Keypair().pubkey()
    assert find_associated_token_address(owner, mint, TOKEN_PROGRAM_ID) == get_associated_token_address(owner, mint)


def test_mint_address_depends_on_name_and_owner():
    owner = Keypair().pubkey()
    mint = find_mint_address(PROGRAM_ID, owner, "TestToken")

    assert mint == find_mint_address(PROGRAM_ID, owner, "TestToken")
    assert mint != find_mint_address(PROGRAM_ID, owner, "Other")
    assert mint != find_mint_address(PROGRAM_ID, Keypair().pubkey(), "TestToken")
    assert not mint.is_on_curve()


def test_create_token_instruction():
    signer = Keypair().pubkey()
    ix = create_token_instruction(PROGRAM_ID, signer, "TestToken")

    assert bytes(ix.data) == discriminator("create_token") + encode_string("TestToken")
    assert ix.accounts[0].pubkey == signer and ix.accounts[0].is_signer
    assert ix.accounts[1].pubkey == find_mint_address(PROGRAM_ID, signer, "TestToken")
    assert ix.accounts[-1].pubkey == TOKEN_2022_PROGRAM_ID


def test_create_associated_token_account_instruction():
    signer, mint = Keypair().pubkey(), Keypair().pubkey()
    ix = create_associated_token_account_instruction(PROGRAM_ID, signer, mint)

    assert bytes(ix.data) == discriminator("create_associated_token_account")
    assert ix.accounts[2].pubkey == find_associated_token_address(signer, mint)
    assert ix.accounts[2].is_writable


def test_mint_and_transfer_amounts():
    signer, mint, receiver, to = (Keypair().pubkey() for _ in range(4))

    mint_ix = mint_token_instruction(PROGRAM_ID, signer, mint, receiver, 200_000_000)
    assert bytes(mint_ix.data) == discriminator("mint_token") + (200_000_000).to_bytes(8, "little")

    transfer_ix = transfer_token_instruction(PROGRAM_ID, signer, mint, receiver, to, 100)
    assert bytes(transfer_ix.data) == discriminator("transfer_token") + (100).to_bytes(8, "little")
    assert transfer_ix.accounts[2].pubkey == find_associated_token_address(to, mint)
    assert transfer_ix.accounts[-1].pubkey == signer and transfer_ix.accounts[-1].is_signer


def test_client_flow():
    client = FakeClient()
    wallet = Keypair()
    program = TokenProgramClient(client, str(PROGRAM_ID), wallet, "TestToken")
    receiver = Keypair().pubkey()

    async def flow():
        return [
            await program.create_token(),
            await program.create_associated_token_account(),
            await program.mint_token(200_000_000),
            await program.transfer_token(str(receiver), 100),
        ]

    signatures = asyncio.run(flow())

    assert signatures == [str(tx.signatures[0]) for tx in client.sent]
    assert program.payer_ata == find_associated_token_address(wallet.pubkey(), program.mint)
    for tx in client.sent:
        keys = tx.message.account_keys
        assert keys[0] == wallet.pubkey()
        assert keys[tx.message.instructions[0].program_id_index] == PROGRAM_ID
    assert isinstance(program.mint, Pubkey)
