"""
Chain adapter implementations, one per provider API family.
"""

from chain_adapters.providers.ada import BlockfrostAdapter
from chain_adapters.providers.atom import CosmosLcdAdapter
from chain_adapters.providers.dot import PolkadotSidecarAdapter
from chain_adapters.providers.esplora import EsploraAdapter
from chain_adapters.providers.evm import EvmRpcAdapter
from chain_adapters.providers.sol import SolanaAdapter
from chain_adapters.providers.trx import TronAdapter
from chain_adapters.providers.utxo import UtxoRpcAdapter
from chain_adapters.providers.xlm import StellarHorizonAdapter
from chain_adapters.providers.xrp import XrpLedgerAdapter


__all__ = [
    "BlockfrostAdapter",
    "CosmosLcdAdapter",
    "EsploraAdapter",
    "EvmRpcAdapter",
    "PolkadotSidecarAdapter",
    "SolanaAdapter",
    "StellarHorizonAdapter",
    "TronAdapter",
    "UtxoRpcAdapter",
    "XrpLedgerAdapter",
]
