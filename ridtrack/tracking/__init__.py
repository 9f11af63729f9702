"""Live-tracking engine: viewport, subscription, staleness and scene reconciliation."""

from .driver import CycleResult, RefreshDriver
from .normalizer import normalize_observation, normalize_observations
from .reconciler import EntityReconciler, ReconcilePlan, plan_reconciliation
from .staleness import StalenessCache, TrackedEntry
from .subscription import Subscription, SubscriptionManager, SubscriptionState
from .viewport import ViewportTracker, estimate_diagonal_km, to_view_param

__all__ = [
    "CycleResult",
    "EntityReconciler",
    "RefreshDriver",
    "ReconcilePlan",
    "StalenessCache",
    "Subscription",
    "SubscriptionManager",
    "SubscriptionState",
    "TrackedEntry",
    "ViewportTracker",
    "estimate_diagonal_km",
    "normalize_observation",
    "normalize_observations",
    "plan_reconciliation",
    "to_view_param",
]
