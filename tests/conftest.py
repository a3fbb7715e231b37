import asyncio
import json
from types import SimpleNamespace

import pytest
from solders.hash import Hash
from solders.keypair import Keypair

ABANDON_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)


def make_signature(tag: bytes = b"sig"):
    return Keypair().sign_message(tag)


class FakeClient:
    """In-memory stand-in for solana.rpc.async_api.AsyncClient."""

    def __init__(self, balance=0, rent=1_000, confirm_err=None):
        self.balance = balance
        self.rent = rent
        self.confirm_err = confirm_err
        self.account_info = SimpleNamespace(value=None, to_json=lambda: json.dumps({"value": None}))
        self.signature_infos = []
        self.transactions = {}
        self.failing = set()
        self.sent = []
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True

    async def get_balance(self, pubkey, commitment=None):
        self.calls.append(("get_balance", str(pubkey)))
        return SimpleNamespace(value=self.balance)

    async def get_account_info_json_parsed(self, pubkey, commitment=None):
        self.calls.append(("get_account_info_json_parsed", str(pubkey)))
        return self.account_info

    async def get_minimum_balance_for_rent_exemption(self, size, commitment=None):
        self.calls.append(("get_minimum_balance_for_rent_exemption", size))
        return SimpleNamespace(value=self.rent)

    async def get_latest_blockhash(self, commitment=None):
        return SimpleNamespace(value=SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=100))

    async def send_transaction(self, tx, opts=None):
        self.sent.append(tx)
        return SimpleNamespace(value=tx.signatures[0])

    async def confirm_transaction(self, signature, commitment=None, sleep_seconds=0.5, last_valid_block_height=None):
        self.calls.append(("confirm_transaction", str(signature)))
        return SimpleNamespace(value=[SimpleNamespace(err=self.confirm_err)])

    async def request_airdrop(self, pubkey, lamports, commitment=None):
        self.calls.append(("request_airdrop", str(pubkey), lamports))
        return SimpleNamespace(value=make_signature(b"airdrop"))

    def add_signature(self, transaction_json=None, block_time=1_700_000_000, err=None, fail=False):
        info = SimpleNamespace(signature=make_signature(), block_time=block_time, err=err)
        self.signature_infos.append(info)
        self.transactions[str(info.signature)] = transaction_json
        if fail:
            self.failing.add(str(info.signature))
        return info

    async def get_signatures_for_address(self, pubkey, before=None, until=None, limit=None, commitment=None):
        self.calls.append(("get_signatures_for_address", str(pubkey), before, limit))
        return SimpleNamespace(value=self.signature_infos[:limit])

    async def get_transaction(self, signature, encoding="json", commitment=None, max_supported_transaction_version=None):
        self.calls.append(("get_transaction", str(signature)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1

        key = str(signature)
        if key in self.failing:
            raise RuntimeError(f"could not load {key}")
        tx_json = self.transactions.get(key)
        if tx_json is None:
            return SimpleNamespace(value=None)
        return SimpleNamespace(value=SimpleNamespace(to_json=lambda: json.dumps(tx_json)))


def system_transfer_json(source, destination, lamports, fee=5000):
    return {
        "slot": 1,
        "blockTime": 1_700_000_000,
        "meta": {"fee": fee, "err": None},
        "transaction": {
            "signatures": ["x"],
            "message": {
                "accountKeys": [],
                "instructions": [
                    {
                        "program": "system",
                        "programId": "11111111111111111111111111111111",
                        "parsed": {
                            "type": "transfer",
                            "info": {"source": source, "destination": destination, "lamports": lamports},
                        },
                    }
                ],
            },
        },
    }


@pytest.fixture
def fake_client():
    return FakeClient()
