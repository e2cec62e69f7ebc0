"""
Default configuration values and templates.

Provides sensible defaults for quick setup and template generation.
"""

from typing import Dict, Any


def get_default_correlation() -> Dict[str, Any]:
    """Get default correlation configuration template."""
    return {
        "host_name": "WS01.example.local",
        "user_name": "jsmith",
        "log_count": 6,
    }


def get_default_detection(profile: str = "balanced") -> Dict[str, Any]:
    """Get default detection simulation settings for a named profile."""
    detection_profiles = {
        "balanced": {
            "detection_rate": 0.7,
            "delay_range": "2m-30m",
            "triggers_per_stage": 2,
        },
        "mature_soc": {
            "detection_rate": 0.9,
            "delay_range": "1m-10m",
            "triggers_per_stage": 2,
        },
        "blind_spots": {
            "detection_rate": 0.3,
            "delay_range": "15m-2h",
            "triggers_per_stage": 1,
        },
    }
    return dict(detection_profiles.get(profile, detection_profiles["balanced"]))


def get_default_campaign(campaign_type: str = "apt") -> Dict[str, Any]:
    """Get default campaign configuration for a specific type."""
    campaigns = {
        "apt": {
            "campaign_type": "apt",
            "complexity": "expert",
            "logs_per_stage": 6,
            "detection": get_default_detection("balanced"),
        },
        "ransomware": {
            "campaign_type": "ransomware",
            "complexity": "high",
            "logs_per_stage": 5,
            "detection": get_default_detection("mature_soc"),
        },
        "insider": {
            "campaign_type": "insider",
            "complexity": "medium",
            "logs_per_stage": 4,
            "detection": get_default_detection("blind_spots"),
        },
        "supply_chain": {
            "campaign_type": "supply_chain",
            "complexity": "high",
            "logs_per_stage": 5,
            "detection": get_default_detection("balanced"),
        },
    }
    return campaigns.get(campaign_type, campaigns["apt"])


def get_default_batch() -> Dict[str, Any]:
    """Get default batch configuration."""
    return {
        "count": 10,
        "log_count": 6,
        "techniques": ["T1566.001", "T1059.001", "T1055", "T1003.001", "T1486"],
        "space": "default",
        "timestamp_config": {"start_date": "7d", "end_date": "now", "pattern": "business_hours"},
        "use_ai": False,
        "throttle_seconds": 0.2,
        "concurrency": 1,
    }


def get_default_sink() -> Dict[str, Any]:
    """Get default sink configuration."""
    return {
        "type": "file",
        "output_dir": "./output",
        "format": "ndjson",
        "fail_on_error": True,
    }


# Profile templates for `init`
PROFILE_TEMPLATES = {
    "standard": {
        "description": "APT campaign with balanced detection and NDJSON output",
        "correlation": get_default_correlation(),
        "campaign": get_default_campaign("apt"),
        "batch": get_default_batch(),
        "sink": get_default_sink(),
    },
    "ransomware_drill": {
        "description": "Ransomware chain against a mature SOC",
        "correlation": get_default_correlation(),
        "campaign": get_default_campaign("ransomware"),
        "batch": {**get_default_batch(), "techniques": ["T1566.001", "T1059.001", "T1486"]},
        "sink": get_default_sink(),
    },
    "insider_hunt": {
        "description": "Low-visibility insider campaign for hunting exercises",
        "correlation": get_default_correlation(),
        "campaign": get_default_campaign("insider"),
        "batch": {**get_default_batch(), "count": 5, "techniques": ["T1083", "T1005", "T1567"]},
        "sink": get_default_sink(),
    },
}
