"""Pruning of the bitcoind block store behind lightningd."""

from .bitcoind import BitcoindClient, BitcoinInfo, PruneRequestTemplate
from .scheduler import MaintenanceScheduler, compute_prune_target

__all__ = [
    "BitcoinInfo",
    "BitcoindClient",
    "MaintenanceScheduler",
    "PruneRequestTemplate",
    "compute_prune_target",
]
