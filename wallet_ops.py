"""
Balance, account info, SOL transfers and transaction history.

Every call is one RPC round trip (history: one signatures lookup plus a
detail lookup per signature, issued together). Pass `client` to reuse an
open AsyncClient; otherwise a session is opened against `endpoint` and
closed when the call returns.
"""

import asyncio
import functools
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from wallet_config import DEVNET_RPC_URL, HistoryOptions
from wallet_errors import RpcUnavailable, TransactionFailed

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1


# ---------------- HELPERS ----------------
def to_pubkey(value: Union[str, Pubkey]) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    return Pubkey.from_string(value.strip())


def sol_to_lamports(amount) -> int:
    """Convert a SOL amount to lamports without float truncation."""
    try:
        lamports = Decimal(str(amount)) * LAMPORTS_PER_SOL
    except InvalidOperation as exc:
        raise ValueError(f"Invalid SOL amount: {amount!r}") from exc
    if not lamports.is_finite():
        raise ValueError(f"Invalid SOL amount: {amount!r}")
    if lamports <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")
    if lamports != lamports.to_integral_value():
        raise ValueError(f"Amount {amount} is finer than one lamport")
    if lamports > U64_MAX:
        raise ValueError(f"Amount {amount} exceeds the u64 lamport range")
    return int(lamports)


def format_sol(lamports: int) -> str:
    return f"{Decimal(lamports) / LAMPORTS_PER_SOL:.4f}"


@asynccontextmanager
async def rpc_session(endpoint: Optional[str] = None, client: Optional[AsyncClient] = None):
    if client is not None:
        yield client
        return
    async with AsyncClient(endpoint or DEVNET_RPC_URL, commitment=Confirmed) as session:
        yield session


def rpc_call(func):
    """Surface transport failures as RpcUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SolanaRpcException as exc:
            raise RpcUnavailable(f"RPC request failed: {exc}") from exc

    return wrapper


# ---------------- BALANCE / ACCOUNT ----------------
@rpc_call
async def get_balance_lamports(public_id, endpoint=None, client=None) -> int:
    async with rpc_session(endpoint, client) as session:
        resp = await session.get_balance(to_pubkey(public_id), commitment=Confirmed)
    logger.debug("Balance of %s: %s lamports", public_id, resp.value)
    return resp.value


async def get_balance(public_id, endpoint=None, client=None) -> str:
    """SOL balance rounded to 4 decimals, e.g. "0.0400"."""
    lamports = await get_balance_lamports(public_id, endpoint=endpoint, client=client)
    return format_sol(lamports)


@rpc_call
async def get_account_info(public_id, endpoint=None, client=None):
    async with rpc_session(endpoint, client) as session:
        return await session.get_account_info_json_parsed(to_pubkey(public_id), commitment=Confirmed)


@rpc_call
async def get_minimum_balance_for_rent_exemption(size: int, endpoint=None, client=None) -> int:
    async with rpc_session(endpoint, client) as session:
        resp = await session.get_minimum_balance_for_rent_exemption(size, commitment=Confirmed)
    return resp.value


# ---------------- SEND ----------------
async def _confirm(client, signature: Signature, last_valid_block_height=None):
    try:
        resp = await client.confirm_transaction(
            signature, commitment=Confirmed, last_valid_block_height=last_valid_block_height
        )
    except (UnconfirmedTxError, TransactionExpiredBlockheightExceededError) as exc:
        raise TransactionFailed(f"Transaction {signature} was not confirmed: {exc}", signature=str(signature)) from exc

    status = resp.value[0] if resp.value else None
    if status is None:
        raise TransactionFailed(f"No status returned for {signature}", signature=str(signature))
    if status.err is not None:
        raise TransactionFailed(
            f"Transaction {signature} failed: {status.err}", signature=str(signature), error=status.err
        )


async def send_and_confirm(client, instructions, payer: Keypair, signers=None) -> str:
    """Compile, sign, send and wait for "confirmed"; returns the signature."""
    all_signers = [payer]
    for signer in signers or []:
        if signer.pubkey() not in [s.pubkey() for s in all_signers]:
            all_signers.append(signer)

    latest = (await client.get_latest_blockhash()).value
    message = MessageV0.try_compile(payer.pubkey(), list(instructions), [], latest.blockhash)
    tx = VersionedTransaction(message, all_signers)

    try:
        resp = await client.send_transaction(tx, opts=TxOpts(preflight_commitment=Confirmed))
    except RPCException as exc:
        raise TransactionFailed(f"Transaction rejected: {exc}", error=exc.args[0] if exc.args else None) from exc

    signature = resp.value
    logger.info("Submitted transaction %s", signature)
    await _confirm(client, signature, latest.last_valid_block_height)
    logger.info("Confirmed transaction %s", signature)
    return str(signature)


@rpc_call
async def transfer_native(sender: Keypair, recipient_id, amount, endpoint=None, client=None) -> str:
    """Send `amount` SOL from `sender` to `recipient_id`."""
    ix = transfer(
        TransferParams(
            from_pubkey=sender.pubkey(),
            to_pubkey=to_pubkey(recipient_id),
            lamports=sol_to_lamports(amount),
        )
    )
    async with rpc_session(endpoint, client) as session:
        return await send_and_confirm(session, [ix], sender)


@rpc_call
async def request_airdrop(public_id, amount=1, endpoint=None, client=None) -> str:
    async with rpc_session(endpoint, client) as session:
        resp = await session.request_airdrop(to_pubkey(public_id), sol_to_lamports(amount), commitment=Confirmed)
        await _confirm(session, resp.value)
    return str(resp.value)


# ---------------- HISTORY ----------------
@dataclass(frozen=True)
class TransactionRecord:
    signature: str
    block_time: Optional[datetime]
    status: str
    fee: Optional[int]
    type: str = "unknown"
    lamports: Optional[int] = None
    amount: Optional[float] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None

    def to_dict(self):
        data = asdict(self)
        data["block_time"] = self.block_time.isoformat() if self.block_time else None
        return data


@dataclass(frozen=True)
class FailedRecord:
    """A signature whose details could not be fetched or parsed."""

    signature: str
    reason: str

    def to_dict(self):
        return {"signature": self.signature, "error": self.reason}


HistoryEntry = Union[TransactionRecord, FailedRecord]


def _unwrap_transaction(transaction_json):
    """Return (message, meta) from a jsonParsed getTransaction result."""
    transaction_json = transaction_json or {}
    outer = transaction_json.get("transaction") or {}
    meta = transaction_json.get("meta") or outer.get("meta") or {}
    if "transaction" in outer:
        outer = outer["transaction"] or {}
    return outer.get("message") or {}, meta


def find_system_transfer(instructions):
    for inst in instructions or []:
        if not isinstance(inst, dict):
            continue
        parsed = inst.get("parsed")
        if inst.get("program") == "system" and isinstance(parsed, dict) and parsed.get("type") == "transfer":
            return parsed.get("info") or {}
    return None


def parse_transaction(signature_info, transaction_json, owner: str) -> TransactionRecord:
    """Build a display record from a signature entry and its parsed transaction."""
    message, meta = _unwrap_transaction(transaction_json)
    block_time = signature_info.block_time
    record = TransactionRecord(
        signature=str(signature_info.signature),
        block_time=datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time else None,
        status="Success" if signature_info.err is None else "Failed",
        fee=meta.get("fee"),
    )

    info = find_system_transfer(message.get("instructions"))
    if info is None:
        return record

    lamports = info.get("lamports")
    return replace(
        record,
        type="send" if info.get("source") == owner else "receive",
        lamports=lamports,
        amount=lamports / LAMPORTS_PER_SOL if lamports is not None else None,
        from_address=info.get("source"),
        to_address=info.get("destination"),
    )


async def _fetch_entry(client, signature_info, owner: str) -> HistoryEntry:
    signature = str(signature_info.signature)
    try:
        resp = await client.get_transaction(
            signature_info.signature, encoding="jsonParsed", max_supported_transaction_version=0
        )
        transaction_json = json.loads(resp.value.to_json()) if resp.value is not None else None
        return parse_transaction(signature_info, transaction_json, owner)
    except Exception as exc:
        logger.warning("Error processing transaction %s: %s", signature, exc)
        return FailedRecord(signature=signature, reason=str(exc) or type(exc).__name__)


@rpc_call
async def fetch_history_entries(public_id, options: Optional[HistoryOptions] = None, client=None) -> List[HistoryEntry]:
    """Recent transactions for an address, one entry per signature, newest first."""
    options = options or HistoryOptions()
    owner = to_pubkey(public_id)
    before = Signature.from_string(options.before) if options.before else None

    async with rpc_session(options.endpoint, client) as session:
        resp = await session.get_signatures_for_address(owner, before=before, limit=options.limit)
        signatures = resp.value or []
        logger.debug("Fetched %d signatures for %s", len(signatures), owner)
        entries = await asyncio.gather(*(_fetch_entry(session, sig, str(owner)) for sig in signatures))
    return list(entries)


async def get_transaction_history(
    public_id,
    endpoint: Optional[str] = None,
    options: Optional[HistoryOptions] = None,
    include_failed: bool = False,
    client=None,
) -> List[HistoryEntry]:
    """Transaction records for an address.

    Entries whose details could not be fetched are dropped unless
    `include_failed` is set, in which case they come back as FailedRecord.
    """
    options = options or HistoryOptions()
    if endpoint and not options.endpoint:
        options = replace(options, endpoint=endpoint)

    entries = await fetch_history_entries(public_id, options, client=client)
    if include_failed:
        return entries
    return [entry for entry in entries if isinstance(entry, TransactionRecord)]
