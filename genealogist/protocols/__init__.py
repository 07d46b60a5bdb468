"""
Genealogist Protocols.

Defines interfaces for external integrations.
"""

from genealogist.protocols.genealogy import (
    AffectedBatchRecord,
    DispatchEdge,
    GenealogyStore,
    InputEdge,
    OutputEdge,
    ProductionBatchRecord,
    RecallRecord,
    SkippedEdge,
    StockBatchRecord,
)

__all__ = [
    # Store Protocol
    "GenealogyStore",
    # Node records
    "StockBatchRecord",
    "ProductionBatchRecord",
    "RecallRecord",
    "AffectedBatchRecord",
    # Edge records
    "InputEdge",
    "OutputEdge",
    "DispatchEdge",
    "SkippedEdge",
]
