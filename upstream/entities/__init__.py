from __future__ import annotations

from .milestone import Milestone, MilestoneState
from .struct import Cached, MetaField, PostObject

__all__ = ["Cached", "MetaField", "Milestone", "MilestoneState", "PostObject"]
