"""Domain models and the cost-basis engine.

This package contains in-memory (Pydantic) models for transactions, lots and
tax summaries together with the pure computation over them. They are
independent from persistence models so that business logic and testing can
evolve without DB coupling.
"""

__all__ = [
    "classifier",
    "gains",
    "inventory",
    "ledger",
    "money",
    "pricing",
    "tax_policy",
    "tax_summary",
]
