"""
Generic template used for techniques without a dedicated family.

Driven by the technique catalog: the process, command line and action
of the technique (or neutral placeholders for unknown techniques) fill a
process start, an outbound connection, a file write and a detection.
"""

from datetime import datetime
from typing import List

from .. import mitre
from ..builder.events import FileEvent, NetworkEvent, ProcessEvent, SecurityEvent
from .base import SlotContext, TemplateSlot, minutes

_UNKNOWN = mitre.TechniqueInfo(
    technique_id="T0000",
    name="Unknown Technique",
    tactic="unknown",
)


def _info(ctx: SlotContext) -> mitre.TechniqueInfo:
    return mitre.get_technique(ctx.technique_id) or _UNKNOWN


def _pid(ctx: SlotContext) -> int:
    return ctx.remember("pid", ctx.values.pid)


def process_start(ctx: SlotContext, ts: datetime) -> ProcessEvent:
    info = _info(ctx)
    return ProcessEvent(
        **ctx.envelope(ts, "endpoint.events.process", "process-started"),
        process_name=info.process,
        pid=_pid(ctx),
        ppid=ctx.remember("parent_pid", ctx.values.pid),
        command_line=info.command_line,
        parent_name="explorer.exe",
    )


def outbound_connection(ctx: SlotContext, ts: datetime) -> NetworkEvent:
    return NetworkEvent(
        **ctx.envelope(ts, "network.flows", "network-connection"),
        source_ip=ctx.values.generate_internal_ip(),
        source_port=ctx.values.ephemeral_port(),
        destination_ip=ctx.remember("c2_ip", ctx.values.generate_c2_ip),
        destination_port=ctx.values.choice([443, 8443, 8080]),
        destination_domain=ctx.remember("c2_domain", ctx.values.generate_c2_domain),
        protocol="tcp",
        bytes=ctx.values.size(500, 100_000),
        process_name=_info(ctx).process,
        pid=_pid(ctx),
    )


def artifact_written(ctx: SlotContext, ts: datetime) -> FileEvent:
    return FileEvent(
        **ctx.envelope(ts, "endpoint.events.file", "file-created"),
        file_name="payload.tmp",
        file_path="C:\\ProgramData\\payload.tmp",
        size=ctx.values.size(),
        extension="tmp",
        md5=ctx.values.md5(),
        process_name=_info(ctx).process,
        pid=_pid(ctx),
    )


def technique_detected(ctx: SlotContext, ts: datetime) -> SecurityEvent:
    info = _info(ctx)
    return SecurityEvent(
        **ctx.envelope(ts, "endpoint.events.security", info.action,
                       message=f"Suspicious {info.name} activity"),
        event_category="intrusion_detection",
        severity=5,
        rule_name=mitre.rule_name_for(ctx.technique_id, "endpoint.events.security", info.action),
        process_name=info.process,
        pid=_pid(ctx),
        technique_name=info.name,
    )


def generic_template(ctx: SlotContext) -> List[TemplateSlot]:
    return [
        TemplateSlot("process_start", minutes(20), process_start),
        TemplateSlot("outbound_connection", minutes(15), outbound_connection),
        TemplateSlot("artifact_written", minutes(8), artifact_written),
        TemplateSlot("technique_detected", minutes(3), technique_detected),
    ]
