"""Layer 3: Tasks - User intent translation.

Tasks translate user intent into primitive calls with explicit policies
(boundary handling, multi-match resolution, key reconciliation).
"""

from zonesmith.tasks.attributejointask import AttributeJoinTask
from zonesmith.tasks.spatialjointask import MULTI_MATCH_POLICIES, SpatialJoinTask

__all__ = [
    "AttributeJoinTask",
    "MULTI_MATCH_POLICIES",
    "SpatialJoinTask",
]
