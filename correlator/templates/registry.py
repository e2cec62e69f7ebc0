"""
Technique template registry.

Maps technique ids to templates. Lookups try the exact id, then the
parent family ("T1059.001" -> "T1059"), then the generic default. The
set of templates is fixed when the registry is constructed.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from ..mitre import family_of
from .base import TechniqueTemplate
from .credentials import credentials_template
from .generic import generic_template
from .impact import impact_template
from .injection import injection_template
from .phishing import phishing_template
from .scripting import scripting_template

DEFAULT_TEMPLATE = TechniqueTemplate("default", "Generic attack chain", generic_template)

BUILTIN_TEMPLATES = (
    TechniqueTemplate("T1566", "Phishing", phishing_template),
    TechniqueTemplate("T1059", "Command and Scripting Interpreter", scripting_template),
    TechniqueTemplate("T1055", "Process Injection", injection_template),
    TechniqueTemplate("T1003", "OS Credential Dumping", credentials_template),
    TechniqueTemplate("T1486", "Data Encrypted for Impact", impact_template),
)

GENERIC_NARRATIVE = (
    "Generic attack detected: Initial access → Execution → Persistence → "
    "Discovery → Collection → Alert triggered"
)

NARRATIVES: Mapping[str, str] = MappingProxyType({
    "T1566": (
        "Spearphishing attack detected: Malicious email delivered → User opened attachment → "
        "Malware executed → Network communication → Persistence established → Alert triggered"
    ),
    "T1566.001": (
        "Spearphishing attachment attack: Email with malicious attachment → User execution → "
        "System compromise → Credential harvesting → Detection"
    ),
    "T1059": (
        "Command and scripting attack: PowerShell execution → Remote script download → "
        "Credential dumping → Persistence mechanism → Behavioral detection"
    ),
    "T1059.001": (
        "PowerShell attack chain: Obfuscated script execution → Network communication → "
        "System manipulation → Registry modification → Alert generated"
    ),
    "T1055": (
        "Process injection attack: Malicious process started → Target enumeration → "
        "Process opened → Memory allocated → Code injected → Detection triggered"
    ),
    "T1003": (
        "Credential dumping attack: Dump utility launched → LSASS handle opened → "
        "Memory dump written → Privileged logon → Detection triggered"
    ),
    "T1486": (
        "Ransomware impact: Shadow copies deleted → Network shares enumerated → "
        "Files encrypted → Ransom note dropped → Detection triggered"
    ),
})


def narrative_for(technique_id: str) -> str:
    """Narrative for a technique: exact id, then family, then generic."""
    if technique_id in NARRATIVES:
        return NARRATIVES[technique_id]
    return NARRATIVES.get(family_of(technique_id or ""), GENERIC_NARRATIVE)


class TemplateRegistry:
    """
    Closed lookup table from technique id to template.

    Templates are supplied at construction; there is no way to add or
    replace one afterwards.
    """

    def __init__(
        self,
        templates: Iterable[TechniqueTemplate],
        default: TechniqueTemplate = DEFAULT_TEMPLATE,
    ):
        table: Dict[str, TechniqueTemplate] = {}
        for template in templates:
            if template.technique_id in table:
                raise ValueError(f"Duplicate template for {template.technique_id}")
            table[template.technique_id] = template
        self._templates = MappingProxyType(table)
        self._default = default

    @property
    def templates(self) -> Mapping[str, TechniqueTemplate]:
        """Read-only view of the registered templates."""
        return self._templates

    @property
    def default(self) -> TechniqueTemplate:
        return self._default

    def lookup(self, technique_id: Optional[str]) -> TechniqueTemplate:
        """Resolve a template: exact id, then parent family, then default."""
        if not technique_id:
            return self._default
        template = self._templates.get(technique_id)
        if template is None:
            template = self._templates.get(family_of(technique_id))
        return template or self._default

    def technique_ids(self) -> List[str]:
        return sorted(self._templates)

    def __contains__(self, technique_id: str) -> bool:
        return technique_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)


_DEFAULT_REGISTRY: Optional[TemplateRegistry] = None


def default_registry() -> TemplateRegistry:
    """Registry holding the built-in templates, created on first use."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = TemplateRegistry(BUILTIN_TEMPLATES)
    return _DEFAULT_REGISTRY
