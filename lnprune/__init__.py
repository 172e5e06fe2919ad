"""lnprune - prune bitcoind block files behind a Core Lightning node."""

__version__ = "0.1.0"
