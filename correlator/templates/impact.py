"""Data encrypted for impact (T1486): shadow copy wipe and mass encryption."""

from datetime import datetime
from typing import List

from ..builder.events import FileEvent, NetworkEvent, ProcessEvent, SecurityEvent
from .base import SlotContext, TemplateSlot, minutes

RANSOM_BINARY = "locker.exe"
RANSOM_NOTE = "README_RESTORE_FILES.txt"


def _locker_pid(ctx: SlotContext) -> int:
    return ctx.remember("locker_pid", ctx.values.pid)


def shadow_copy_delete(ctx: SlotContext, ts: datetime) -> ProcessEvent:
    return ProcessEvent(
        **ctx.envelope(ts, "endpoint.events.process", "process-started"),
        process_name="vssadmin.exe",
        pid=ctx.values.pid(),
        ppid=_locker_pid(ctx),
        command_line="vssadmin.exe delete shadows /all /quiet",
        executable="C:\\Windows\\System32\\vssadmin.exe",
        parent_name=RANSOM_BINARY,
    )


def share_enumeration(ctx: SlotContext, ts: datetime) -> NetworkEvent:
    return NetworkEvent(
        **ctx.envelope(ts, "network.flows", "network-connection"),
        source_ip=ctx.remember("host_ip", ctx.values.generate_internal_ip),
        source_port=ctx.values.ephemeral_port(),
        destination_ip=ctx.values.generate_internal_ip(),
        destination_port=445,
        protocol="smb",
        bytes=ctx.values.size(10_000, 500_000),
        process_name=RANSOM_BINARY,
        pid=_locker_pid(ctx),
    )


def file_encrypted(ctx: SlotContext, ts: datetime) -> FileEvent:
    name = ctx.values.choice(["Q3_budget.xlsx", "contracts.docx", "customers.csv", "payroll.xlsx"])
    return FileEvent(
        **ctx.envelope(ts, "endpoint.events.file", "file-renamed"),
        file_name=f"{name}.locked",
        file_path=f"C:\\Users\\{ctx.user}\\Documents\\{name}.locked",
        size=ctx.values.size(),
        extension="locked",
        process_name=RANSOM_BINARY,
        pid=_locker_pid(ctx),
    )


def ransom_note(ctx: SlotContext, ts: datetime) -> FileEvent:
    return FileEvent(
        **ctx.envelope(ts, "endpoint.events.file", "file-created"),
        file_name=RANSOM_NOTE,
        file_path=f"C:\\Users\\{ctx.user}\\Desktop\\{RANSOM_NOTE}",
        size=ctx.values.size(1_000, 4_000),
        extension="txt",
        process_name=RANSOM_BINARY,
        pid=_locker_pid(ctx),
    )


def ransomware_detected(ctx: SlotContext, ts: datetime) -> SecurityEvent:
    return SecurityEvent(
        **ctx.envelope(ts, "endpoint.alerts", "ransomware-detected",
                       message="Mass file encryption activity detected"),
        event_category="malware",
        severity=10,
        rule_name="Endpoint: Ransomware Behavior",
        process_name=RANSOM_BINARY,
        pid=_locker_pid(ctx),
        technique_name="Data Encrypted for Impact",
        threat_family="LockBit",
        file_name=RANSOM_BINARY,
        file_md5=ctx.remember("locker_md5", ctx.values.md5),
    )


def impact_template(ctx: SlotContext) -> List[TemplateSlot]:
    return [
        TemplateSlot("shadow_copy_delete", minutes(20), shadow_copy_delete),
        TemplateSlot("share_enumeration", minutes(15), share_enumeration),
        TemplateSlot("file_encrypted", minutes(10), file_encrypted),
        TemplateSlot("ransom_note", minutes(5), ransom_note),
        TemplateSlot("ransomware_detected", minutes(2), ransomware_detected),
    ]
