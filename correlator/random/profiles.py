"""
Campaign Profiles

Defines complexity profiles, threat actors and the kill-chain stage
catalogs each campaign type is planned from.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union

from ..config.models import CampaignType, Complexity


@dataclass
class ComplexityProfile:
    """Defines planning parameters for a complexity level."""
    name: str
    description: str

    # Stage selection
    min_stages: int
    max_stages: int
    min_techniques: int
    max_techniques: int

    # Timing (hours)
    stage_duration_hours: Tuple[int, int] = (2, 48)
    stage_gap_hours: Tuple[int, int] = (1, 24)
    start_days_ago: Tuple[int, int] = (30, 90)

    # Environment size
    host_count: int = 3
    user_count: int = 3


PROFILES: Dict[Complexity, ComplexityProfile] = {
    Complexity.LOW: ComplexityProfile(
        name="Low",
        description="Short intrusion with a handful of stages",
        min_stages=2,
        max_stages=3,
        min_techniques=1,
        max_techniques=1,
        stage_duration_hours=(1, 12),
        host_count=1,
        user_count=1,
    ),
    Complexity.MEDIUM: ComplexityProfile(
        name="Medium",
        description="Realistic intrusion following most of the kill chain",
        min_stages=3,
        max_stages=5,
        min_techniques=1,
        max_techniques=2,
        host_count=2,
        user_count=2,
    ),
    Complexity.HIGH: ComplexityProfile(
        name="High",
        description="Multi-day campaign across several hosts",
        min_stages=5,
        max_stages=7,
        min_techniques=1,
        max_techniques=2,
        host_count=4,
        user_count=3,
    ),
    Complexity.EXPERT: ComplexityProfile(
        name="Expert",
        description="Full kill chain with several techniques per stage",
        min_stages=99,
        max_stages=99,
        min_techniques=2,
        max_techniques=3,
        host_count=6,
        user_count=4,
    ),
}


def get_profile(complexity: Union[Complexity, str]) -> ComplexityProfile:
    """
    Get complexity profile by name or enum.

    Args:
        complexity: Complexity level

    Returns:
        ComplexityProfile for the specified level
    """
    if isinstance(complexity, str):
        complexity = Complexity(complexity.lower())

    return PROFILES[complexity]


@dataclass(frozen=True)
class ThreatActor:
    """A named actor a campaign is attributed to."""
    id: str
    name: str
    motivation: str
    sophistication: str
    aliases: Tuple[str, ...] = ()


THREAT_ACTORS: Dict[CampaignType, List[ThreatActor]] = {
    CampaignType.APT: [
        ThreatActor("APT1", "Comment Crew", "espionage", "high", ("PLA Unit 61398", "Comment Group")),
        ThreatActor("CARBANAK", "Carbanak Group", "financial", "expert", ("FIN7", "Carbon Spider")),
        ThreatActor("LAZARUS", "Lazarus Group", "financial", "expert", ("Hidden Cobra",)),
    ],
    CampaignType.RANSOMWARE: [
        ThreatActor("CONTI", "Conti", "financial", "high", ("Wizard Spider",)),
        ThreatActor("LOCKBIT", "LockBit", "financial", "high", ("ABCD",)),
        ThreatActor("DARKSIDE", "DarkSide", "financial", "high", ("Carbon Spider",)),
    ],
    CampaignType.INSIDER: [
        ThreatActor("DISGRUNTLED", "Disgruntled Employee", "revenge", "low"),
        ThreatActor("ROGUE_ADMIN", "Malicious System Administrator", "financial", "high"),
        ThreatActor("CONTRACTOR", "Negligent Contractor", "negligence", "low"),
    ],
    CampaignType.SUPPLY_CHAIN: [
        ThreatActor("APT29", "Cozy Bear", "espionage", "expert", ("Nobelium",)),
        ThreatActor("APT41", "Double Dragon", "espionage", "expert", ("Winnti",)),
    ],
}


CAMPAIGN_NAMES: Dict[CampaignType, List[str]] = {
    CampaignType.APT: ["Operation Aurora", "Operation Shady Lure", "Operation Ghost Ledger"],
    CampaignType.RANSOMWARE: ["Enterprise Ransomware Campaign", "Double Extortion Campaign"],
    CampaignType.INSIDER: ["Revenge-Motivated Data Theft", "Corporate Espionage", "Persistent Backdoor"],
    CampaignType.SUPPLY_CHAIN: ["Software Build System Compromise", "Managed Service Provider Breach"],
}


@dataclass(frozen=True)
class StageTemplate:
    """One kill-chain phase a campaign type can go through."""
    name: str
    tactic: str
    techniques: Tuple[str, ...]
    objectives: Tuple[str, ...] = field(default_factory=tuple)


# Kill chain stages by campaign type, in execution order
CAMPAIGN_STAGES: Dict[CampaignType, List[StageTemplate]] = {
    CampaignType.APT: [
        StageTemplate("initial_access", "Initial Access", ("T1566.001", "T1190"),
                      ("Gain foothold on a user workstation",)),
        StageTemplate("execution", "Execution", ("T1059.001", "T1204", "T1047"),
                      ("Run implant",)),
        StageTemplate("persistence", "Persistence", ("T1547.001", "T1053.005"),
                      ("Survive reboots",)),
        StageTemplate("privilege_escalation", "Privilege Escalation", ("T1055",),
                      ("Obtain SYSTEM context",)),
        StageTemplate("credential_access", "Credential Access", ("T1003.001", "T1110.003"),
                      ("Harvest domain credentials",)),
        StageTemplate("discovery", "Discovery", ("T1083", "T1018", "T1082"),
                      ("Map the network",)),
        StageTemplate("lateral_movement", "Lateral Movement", ("T1021.001", "T1021.002"),
                      ("Reach high-value servers",)),
        StageTemplate("collection", "Collection", ("T1005", "T1560"),
                      ("Stage intelligence for theft",)),
        StageTemplate("exfiltration", "Exfiltration", ("T1041", "T1567.002"),
                      ("Move data off the network",)),
    ],
    CampaignType.RANSOMWARE: [
        StageTemplate("initial_access", "Initial Access", ("T1566.001", "T1190"),
                      ("Compromise an entry point",)),
        StageTemplate("persistence", "Persistence", ("T1053.005", "T1547.001"),
                      ("Maintain access",)),
        StageTemplate("discovery", "Discovery", ("T1083", "T1135", "T1018"),
                      ("Find file shares and backups",)),
        StageTemplate("credential_access", "Credential Access", ("T1003.001", "T1110.003"),
                      ("Obtain administrator credentials",)),
        StageTemplate("lateral_movement", "Lateral Movement", ("T1021.001", "T1021.002", "T1047"),
                      ("Spread to servers",)),
        StageTemplate("collection", "Collection", ("T1005", "T1039", "T1560"),
                      ("Gather data for extortion",)),
        StageTemplate("exfiltration", "Exfiltration", ("T1567.002", "T1041"),
                      ("Steal data before encryption",)),
        StageTemplate("impact", "Impact", ("T1486", "T1490"),
                      ("Encrypt systems", "Destroy backups")),
    ],
    CampaignType.INSIDER: [
        StageTemplate("escalating_data_access", "Discovery", ("T1083", "T1005", "T1039"),
                      ("Browse sensitive shares",)),
        StageTemplate("data_staging", "Collection", ("T1074", "T1560"),
                      ("Stage files for removal",)),
        StageTemplate("log_manipulation", "Defense Evasion", ("T1070",),
                      ("Cover tracks",)),
        StageTemplate("exfiltration_attempt", "Exfiltration", ("T1567", "T1052"),
                      ("Remove data from the company",)),
    ],
    CampaignType.SUPPLY_CHAIN: [
        StageTemplate("vendor_compromise", "Initial Access", ("T1566.001", "T1078", "T1190"),
                      ("Compromise a vendor account",)),
        StageTemplate("build_system_infiltration", "Lateral Movement", ("T1021", "T1078"),
                      ("Reach the build pipeline",)),
        StageTemplate("malicious_code_injection", "Persistence", ("T1195.002", "T1554"),
                      ("Backdoor the release artifact",)),
        StageTemplate("distribution", "Initial Access", ("T1195.002",),
                      ("Ship the trojanized update",)),
        StageTemplate("post_compromise", "Execution", ("T1059.001", "T1041"),
                      ("Activate implant at customers",)),
    ],
}
