"""Process injection (T1055): enumerate, open, allocate, inject."""

from datetime import datetime
from typing import List

from ..builder.events import ApiEvent, ProcessEvent, SecurityEvent
from .base import SlotContext, TemplateSlot, minutes

INJECTOR = "suspicious.exe"
TARGET = "notepad.exe"


def _injector_pid(ctx: SlotContext) -> int:
    return ctx.remember("injector_pid", ctx.values.pid)


def _target_pid(ctx: SlotContext) -> int:
    return ctx.remember("target_pid", ctx.values.pid)


def injector_start(ctx: SlotContext, ts: datetime) -> ProcessEvent:
    path = f"C:\\Users\\{ctx.user}\\AppData\\Local\\Temp\\{INJECTOR}"
    return ProcessEvent(
        **ctx.envelope(ts, "endpoint.events.process", "process-started"),
        process_name=INJECTOR,
        pid=_injector_pid(ctx),
        ppid=ctx.remember("explorer_pid", ctx.values.pid),
        command_line=path,
        executable=path,
        parent_name="explorer.exe",
    )


def process_enumeration(ctx: SlotContext, ts: datetime) -> ApiEvent:
    return ApiEvent(
        **ctx.envelope(ts, "endpoint.events.api", "api-call"),
        api_name="CreateToolhelp32Snapshot",
        parameters="TH32CS_SNAPPROCESS",
        process_name=INJECTOR,
        pid=_injector_pid(ctx),
    )


def open_target(ctx: SlotContext, ts: datetime) -> ApiEvent:
    return ApiEvent(
        **ctx.envelope(ts, "endpoint.events.api", "api-call"),
        api_name="OpenProcess",
        parameters="PROCESS_ALL_ACCESS",
        process_name=INJECTOR,
        pid=_injector_pid(ctx),
        target_process_name=TARGET,
        target_pid=_target_pid(ctx),
    )


def remote_allocation(ctx: SlotContext, ts: datetime) -> ApiEvent:
    return ApiEvent(
        **ctx.envelope(ts, "endpoint.events.api", "api-call"),
        api_name="VirtualAllocEx",
        parameters="MEM_COMMIT | MEM_RESERVE, PAGE_EXECUTE_READWRITE",
        process_name=INJECTOR,
        pid=_injector_pid(ctx),
        target_process_name=TARGET,
        target_pid=_target_pid(ctx),
        memory_size=ctx.values.choice([4096, 8192, 65536]),
        memory_protection="PAGE_EXECUTE_READWRITE",
    )


def injection_detected(ctx: SlotContext, ts: datetime) -> SecurityEvent:
    return SecurityEvent(
        **ctx.envelope(ts, "endpoint.events.security", "process-injection",
                       message=f"{INJECTOR} injected code into {TARGET}"),
        event_category="intrusion_detection",
        severity=8,
        rule_name="Endpoint: Remote Thread Injection",
        process_name=INJECTOR,
        pid=_injector_pid(ctx),
        technique_name="Process Injection",
        target_process_name=TARGET,
        target_pid=_target_pid(ctx),
        injection_technique="CreateRemoteThread",
    )


def injection_template(ctx: SlotContext) -> List[TemplateSlot]:
    return [
        TemplateSlot("injector_start", minutes(12), injector_start),
        TemplateSlot("process_enumeration", minutes(8), process_enumeration),
        TemplateSlot("open_target", minutes(6), open_target),
        TemplateSlot("remote_allocation", minutes(4), remote_allocation),
        TemplateSlot("injection_detected", minutes(2), injection_detected),
    ]
