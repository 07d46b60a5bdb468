"""
Genealogist Adapters.

Implementations of the GenealogyStore protocol.
The ORM adapter imports models lazily, so importing this package does not
require the app registry to be ready.
"""

from genealogist.adapters.memory import InMemoryGenealogyStore
from genealogist.adapters.orm import OrmGenealogyStore

__all__ = [
    "OrmGenealogyStore",
    "InMemoryGenealogyStore",
]
