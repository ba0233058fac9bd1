"""Break scheduling engine: catalog, eligibility, draft ledger and commit."""

from breakplanner.scheduling.auto_assigner import (
    AutoAssignConfig,
    AutoAssigner,
    AutoAssignProposal,
    AutoAssignResult,
)
from breakplanner.scheduling.catalog import CatalogBuilder, build_catalog, group_slots
from breakplanner.scheduling.committer import CommitResult, ReconciliationCommitter
from breakplanner.scheduling.eligibility import (
    EligibilityDecision,
    EligibilityEvaluator,
    StaffStatus,
)
from breakplanner.scheduling.ledger import DraftLedger
from breakplanner.scheduling.manager import BreakManager

__all__ = [
    # Session
    "BreakManager",
    # Core components
    "CatalogBuilder",
    "build_catalog",
    "group_slots",
    "EligibilityEvaluator",
    "EligibilityDecision",
    "StaffStatus",
    "DraftLedger",
    "ReconciliationCommitter",
    "CommitResult",
    # Auto-fill
    "AutoAssigner",
    "AutoAssignConfig",
    "AutoAssignProposal",
    "AutoAssignResult",
]
