"""Bundle composition under a context budget."""

from skillpack.compose.composer import (
    BudgetUnit,
    BundleSection,
    ComposedBundle,
    CompositionBudget,
    ContentComposer,
    SectionKind,
)

__all__ = [
    "BudgetUnit",
    "BundleSection",
    "ComposedBundle",
    "CompositionBudget",
    "ContentComposer",
    "SectionKind",
]
