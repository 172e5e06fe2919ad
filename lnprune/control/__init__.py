"""Control side: requests from lightningd over stdin/stdout."""

from .dispatcher import MANIFEST, ControlDispatcher
from .init_payload import LightningInit
from .stream import iter_documents

__all__ = ["ControlDispatcher", "LightningInit", "MANIFEST", "iter_documents"]
