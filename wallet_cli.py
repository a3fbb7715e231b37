#!/usr/bin/env python3
"""
Wallet command line.
Usage: python3 wallet_cli.py <command> [args]
Prints JSON on success, "ERROR: ..." on failure.
"""

import asyncio
import json
import logging
import sys

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

import token_program
import wallet_keys
import wallet_ops
from wallet_config import DEFAULT_HISTORY_LIMIT, HistoryOptions, load_settings
from wallet_errors import WalletError

USAGE = """Usage: wallet_cli.py <command> [args]
Commands:
  create                               new random keypair
  mnemonic [words]                     new seed phrase (12/15/18/21/24 words)
  derive [phrase...]                   keypair from seed phrase (default: $SEED)
  restore <secret>                     keypair from base58 secret key
  balance <address>                    SOL balance
  info <address>                       parsed account info
  send <to> <amount>                   send SOL from the configured wallet
  history <address> [--limit N] [--before SIG] [--include-failed]
  airdrop <address> [amount]           request devnet SOL
  token create|ata|mint <amount>|transfer <to> <amount> [--name NAME]"""


def _wallet_output(keypair):
    return {"address": str(keypair.pubkey()), "secret": wallet_keys.encode_secret(keypair)}


def _configured_wallet(settings):
    material = settings.private_key or settings.seed_phrase
    if not material:
        raise WalletError("No wallet configured: set PRIVATE_KEY or SEED")
    return wallet_keys.load_wallet(material)


def _pop_flag(args, flag, has_value=True):
    if flag not in args:
        return None
    i = args.index(flag)
    if not has_value:
        del args[i]
        return True
    if i + 1 >= len(args):
        raise ValueError(f"{flag} needs a value")
    value = args[i + 1]
    del args[i:i + 2]
    return value


async def _token_command(settings, args):
    if not settings.anchor_program_id:
        raise WalletError("ANCHOR_PROGRAM_ID is not set")
    name = _pop_flag(args, "--name") or "TestToken"
    action = args[0] if args else None
    wallet = _configured_wallet(settings)

    async with AsyncClient(settings.rpc_url, commitment=Confirmed) as client:
        program = token_program.TokenProgramClient(client, settings.anchor_program_id, wallet, name)
        if action == "create":
            signature = await program.create_token()
        elif action == "ata":
            signature = await program.create_associated_token_account()
        elif action == "mint" and len(args) == 2:
            signature = await program.mint_token(int(args[1]))
        elif action == "transfer" and len(args) == 3:
            signature = await program.transfer_token(args[1], int(args[2]))
        else:
            raise ValueError(f"Unknown token command: {' '.join(args)}")
    return {"signature": signature, "mint": str(program.mint)}


def run(cmd, args, settings):
    endpoint = settings.rpc_url

    if cmd == "create":
        return _wallet_output(wallet_keys.create_wallet())
    if cmd == "mnemonic":
        words = int(args[0]) if args else 12
        return {"mnemonic": wallet_keys.generate_mnemonic(words)}
    if cmd == "derive":
        phrase = " ".join(args) or settings.seed_phrase
        if not phrase:
            raise WalletError("No seed phrase provided")
        keypair = wallet_keys.keypair_from_seed_phrase(phrase)
        return dict(_wallet_output(keypair), path=wallet_keys.SOLANA_DERIVATION_PATH)
    if cmd == "restore" and len(args) == 1:
        return _wallet_output(wallet_keys.keypair_from_encoded_secret(args[0]))
    if cmd == "balance" and len(args) == 1:
        balance = asyncio.run(wallet_ops.get_balance(args[0], endpoint=endpoint))
        return {"address": args[0], "balance": balance}
    if cmd == "info" and len(args) == 1:
        resp = asyncio.run(wallet_ops.get_account_info(args[0], endpoint=endpoint))
        return json.loads(resp.to_json())
    if cmd == "send" and len(args) == 2:
        sender = _configured_wallet(settings)
        signature = asyncio.run(wallet_ops.transfer_native(sender, args[0], args[1], endpoint=endpoint))
        return {"success": True, "signature": signature}
    if cmd == "history":
        limit = _pop_flag(args, "--limit")
        before = _pop_flag(args, "--before")
        include_failed = bool(_pop_flag(args, "--include-failed", has_value=False))
        if len(args) != 1:
            return None
        options = HistoryOptions(limit=int(limit) if limit else DEFAULT_HISTORY_LIMIT, before=before, endpoint=endpoint)
        entries = asyncio.run(wallet_ops.get_transaction_history(args[0], options=options, include_failed=include_failed))
        return [entry.to_dict() for entry in entries]
    if cmd == "airdrop" and len(args) in (1, 2):
        amount = args[1] if len(args) == 2 else 1
        return {"signature": asyncio.run(wallet_ops.request_airdrop(args[0], amount, endpoint=endpoint))}
    if cmd == "token":
        return asyncio.run(_token_command(settings, args))
    return None


def main(argv=None, settings=None):
    args = list(sys.argv[1:] if argv is None else argv)
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not args:
        print(USAGE)
        return 1

    cmd, rest = args[0], args[1:]
    try:
        result = run(cmd, rest, settings)
    except (WalletError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    if result is None:
        print(USAGE)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
