"""
Django Genealogist - Batch genealogy and recall traceability.

Answers: "if batch X is recalled, which finished batches and which
customers received product made from it, and how much is unaccounted for?"

Usage:
    from genealogist import genealogy, GenealogyError

    flour = genealogy.receive_batch("bakery", 25, allergens=["gluten"])

    # Production (directly on model)
    run = genealogy.create_production_batch("bakery")
    run.add_input(flour, 10)
    bread = run.add_output(8)
    run.complete()

    genealogy.dispatch(bread, "Acme Cafe", 5)

    # Recall
    recall = genealogy.open_recall("bakery", "Undeclared sesame", affected=[flour])
    recall.activate()
    report = genealogy.report(recall)
    for customer in report.traced_customers:
        print(customer.customer_name, customer.total_quantity)
"""

from genealogist.exceptions import GenealogyError


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("genealogy", "Genealogy"):
        from genealogist.service import Genealogy

        return Genealogy
    if name == "RecallReport":
        from genealogist.results import RecallReport

        return RecallReport
    if name == "LineageTrace":
        from genealogist.results import LineageTrace

        return LineageTrace
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["genealogy", "Genealogy", "GenealogyError", "RecallReport", "LineageTrace"]
__version__ = "0.1.0"
