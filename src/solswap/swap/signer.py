"""Wallet adapters and the dual sign-and-send path.

Wallets may expose a native sign-and-send method (the wallet submits the
transaction itself) in addition to the generic adapter send. The native path
is preferred; if it raises, the generic path is tried exactly once.
"""

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import Optional

from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from solswap.errors import SigningFailed

logger = logging.getLogger(__name__)


def deserialize_transaction(serialized: str) -> VersionedTransaction:
    """Decode a base64 versioned transaction returned by an aggregator API.

    Raises:
        SigningFailed: If the payload is not a valid transaction
    """
    try:
        return VersionedTransaction.from_bytes(base64.b64decode(serialized))
    except (binascii.Error, ValueError) as e:
        raise SigningFailed(f"Could not deserialize transaction: {e}") from e


class WalletAdapter(ABC):
    """A connected wallet able to sign and submit transactions."""

    @property
    @abstractmethod
    def public_key(self) -> str:
        """Base58 public key of the connected account."""
        pass

    @property
    def supports_native_send(self) -> bool:
        """Whether the wallet exposes its own sign-and-send method."""
        return False

    async def sign_and_send_transaction(self, tx: VersionedTransaction) -> str:
        """Native sign-and-send. Returns the transaction signature.

        Only called when supports_native_send is true; wallets without a native
        path inherit this and fail with SigningFailed.
        """
        raise SigningFailed(f"{type(self).__name__} has no native sign-and-send")

    @abstractmethod
    async def send_transaction(self, tx: VersionedTransaction) -> str:
        """Generic adapter send. Returns the transaction signature."""
        pass


class KeypairWallet(WalletAdapter):
    """Local wallet backed by a keypair derived from a seed phrase.

    Uses standard BIP44 path: m/44'/501'/index'/0'
    """

    def __init__(
        self,
        keypair: Keypair,
        rpc_url: str = "https://api.mainnet-beta.solana.com",
        skip_preflight: bool = False,
    ):
        self.keypair = keypair
        self.rpc_url = rpc_url
        self.skip_preflight = skip_preflight

    @classmethod
    def from_seed_phrase(
        cls,
        seed_phrase: str,
        index: int = 0,
        rpc_url: str = "https://api.mainnet-beta.solana.com",
    ) -> "KeypairWallet":
        """Derive the keypair at index from a BIP39 seed phrase."""
        from bip_utils import Bip39SeedGenerator, Bip44, Bip44Changes, Bip44Coins

        seed = Bip39SeedGenerator(seed_phrase).Generate()
        bip44 = Bip44.FromSeed(seed, Bip44Coins.SOLANA)
        account = bip44.Purpose().Coin().Account(index).Change(Bip44Changes.CHAIN_EXT)
        private_key = account.PrivateKey().Raw().ToBytes()

        # Solana keypair from 32-byte seed
        return cls(Keypair.from_seed(private_key[:32]), rpc_url=rpc_url)

    @property
    def public_key(self) -> str:
        return str(self.keypair.pubkey())

    @property
    def supports_native_send(self) -> bool:
        return True

    def sign(self, tx: VersionedTransaction) -> VersionedTransaction:
        """Sign the transaction message with the wallet keypair."""
        return VersionedTransaction(tx.message, [self.keypair])

    async def _submit(self, tx: VersionedTransaction, skip_preflight: bool) -> str:
        from solana.rpc.async_api import AsyncClient
        from solana.rpc.types import TxOpts

        signed = self.sign(tx)
        async with AsyncClient(self.rpc_url) as rpc:
            result = await rpc.send_raw_transaction(
                bytes(signed),
                opts=TxOpts(skip_preflight=skip_preflight, preflight_commitment="confirmed"),
            )
        return str(result.value)

    async def sign_and_send_transaction(self, tx: VersionedTransaction) -> str:
        return await self._submit(tx, skip_preflight=self.skip_preflight)

    async def send_transaction(self, tx: VersionedTransaction) -> str:
        return await self._submit(tx, skip_preflight=False)


async def sign_and_send(wallet: WalletAdapter, tx: VersionedTransaction) -> str:
    """Sign and submit tx through the wallet, falling back once.

    Args:
        wallet: Connected wallet adapter
        tx: Unsigned (or partially signed) versioned transaction

    Returns:
        Transaction signature

    Raises:
        SigningFailed: If the last attempted path fails
    """
    native_error: Optional[Exception] = None

    if wallet.supports_native_send:
        try:
            signature = await wallet.sign_and_send_transaction(tx)
            logger.info(f"Submitted via native sign-and-send: {signature}")
            return signature
        except Exception as e:
            native_error = e
            logger.warning(f"Native sign-and-send failed, falling back to adapter send: {e}")

    try:
        signature = await wallet.send_transaction(tx)
    except Exception as e:
        if native_error is not None:
            raise SigningFailed(f"Signing failed: {e} (native path: {native_error})") from e
        raise SigningFailed(f"Signing failed: {e}") from e

    logger.info(f"Submitted via adapter send: {signature}")
    return signature
