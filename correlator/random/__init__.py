"""
Random Campaign Planning

Plans randomized multi-stage campaigns and generates field values.
"""

from .names import NameGenerator
from .planner import Campaign, CampaignPlanner, Stage, StagePlanner
from .profiles import ComplexityProfile, ThreatActor, get_profile

__all__ = [
    "Campaign",
    "CampaignPlanner",
    "ComplexityProfile",
    "NameGenerator",
    "Stage",
    "StagePlanner",
    "ThreatActor",
    "get_profile",
]
