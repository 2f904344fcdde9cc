"""docledger - append-only document registry ledger.

Records a content hash bound to a claimed signer and an opaque signature blob,
then answers whether a hash was registered by a given signer.
"""

__version__ = "0.1.0"
__author__ = "docledger Contributors"

from docledger.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
