"""OS credential dumping (T1003): LSASS access and dump exfil staging."""

from datetime import datetime
from typing import List

from ..builder.events import ApiEvent, AuthenticationEvent, FileEvent, ProcessEvent, SecurityEvent
from .base import SlotContext, TemplateSlot, minutes

DUMP_FILE = "lsass.dmp"


def _tool_pid(ctx: SlotContext) -> int:
    return ctx.remember("procdump_pid", ctx.values.pid)


def _lsass_pid(ctx: SlotContext) -> int:
    return ctx.remember("lsass_pid", lambda: ctx.values.choice([612, 636, 668, 704, 728]))


def dump_tool_start(ctx: SlotContext, ts: datetime) -> ProcessEvent:
    return ProcessEvent(
        **ctx.envelope(ts, "endpoint.events.process", "process-started"),
        process_name="procdump64.exe",
        pid=_tool_pid(ctx),
        ppid=ctx.remember("cmd_pid", ctx.values.pid),
        command_line=f"procdump64.exe -accepteula -ma lsass.exe C:\\Windows\\Temp\\{DUMP_FILE}",
        executable="C:\\Windows\\Temp\\procdump64.exe",
        parent_name="cmd.exe",
    )


def lsass_handle(ctx: SlotContext, ts: datetime) -> ApiEvent:
    return ApiEvent(
        **ctx.envelope(ts, "endpoint.events.api", "api-call"),
        api_name="OpenProcess",
        parameters="PROCESS_QUERY_INFORMATION | PROCESS_VM_READ",
        process_name="procdump64.exe",
        pid=_tool_pid(ctx),
        target_process_name="lsass.exe",
        target_pid=_lsass_pid(ctx),
    )


def dump_written(ctx: SlotContext, ts: datetime) -> FileEvent:
    return FileEvent(
        **ctx.envelope(ts, "endpoint.events.file", "file-created"),
        file_name=DUMP_FILE,
        file_path=f"C:\\Windows\\Temp\\{DUMP_FILE}",
        size=ctx.values.size(30_000_000, 80_000_000),
        extension="dmp",
        process_name="procdump64.exe",
        pid=_tool_pid(ctx),
    )


def privileged_logon(ctx: SlotContext, ts: datetime) -> AuthenticationEvent:
    return AuthenticationEvent(
        **ctx.envelope(ts, "security", "special-privileges-assigned",
                       message="Special privileges assigned to new logon"),
        event_id=4672,
        outcome="success",
        target_user=ctx.user,
        process_name="lsass.exe",
        pid=_lsass_pid(ctx),
    )


def credential_dump_detected(ctx: SlotContext, ts: datetime) -> SecurityEvent:
    return SecurityEvent(
        **ctx.envelope(ts, "endpoint.events.security", "credential-dumping",
                       message="LSASS memory read by an untrusted process"),
        event_category="intrusion_detection",
        severity=9,
        rule_name="Credential Access: LSASS Memory Dump",
        process_name="procdump64.exe",
        pid=_tool_pid(ctx),
        technique_name="OS Credential Dumping",
        target_process_name="lsass.exe",
        target_pid=_lsass_pid(ctx),
    )


def credentials_template(ctx: SlotContext) -> List[TemplateSlot]:
    return [
        TemplateSlot("dump_tool_start", minutes(15), dump_tool_start),
        TemplateSlot("lsass_handle", minutes(12), lsass_handle),
        TemplateSlot("dump_written", minutes(9), dump_written),
        TemplateSlot("privileged_logon", minutes(5), privileged_logon),
        TemplateSlot("credential_dump_detected", minutes(2), credential_dump_detected),
    ]
