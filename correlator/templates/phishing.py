"""Phishing (T1566): delivery through to malware detection."""

from datetime import datetime
from typing import List

from ..builder.events import (
    AuthenticationEvent,
    EmailAttachment,
    EmailEvent,
    FileEvent,
    NetworkEvent,
    ProcessEvent,
    RegistryEvent,
    SecurityEvent,
)
from .base import SlotContext, TemplateSlot, minutes

SENDER_DOMAIN = "suspicious-domain.com"
SUBJECT = "Urgent: Invoice Payment Required"
ATTACHMENT = "invoice_2025.pdf.exe"
C2_IP = "185.220.101.47"


def _malware_pid(ctx: SlotContext) -> int:
    return ctx.remember("malware_pid", ctx.values.pid)


def _malware_md5(ctx: SlotContext) -> str:
    return ctx.remember("malware_md5", ctx.values.md5)


def _download_path(ctx: SlotContext) -> str:
    return f"C:\\Users\\{ctx.user}\\Downloads\\{ATTACHMENT}"


def email_delivery(ctx: SlotContext, ts: datetime) -> EmailEvent:
    return EmailEvent(
        **ctx.envelope(ts, "exchange.messagetrace", "email-delivered",
                       message=f"Email delivered to {ctx.user}"),
        subject=SUBJECT,
        sender=f"attacker@{SENDER_DOMAIN}",
        recipient=f"{ctx.user}@company.com",
        attachments=(EmailAttachment(ATTACHMENT, "exe", ctx.values.size(200_000, 2_000_000)),),
        outcome="success",
        indicator_domain=SENDER_DOMAIN,
    )


def email_opened(ctx: SlotContext, ts: datetime) -> EmailEvent:
    return EmailEvent(
        **ctx.envelope(ts, "outlook.events", "email-opened"),
        subject=SUBJECT,
        sender=f"attacker@{SENDER_DOMAIN}",
        outcome="success",
        user_agent="Microsoft Outlook 16.0",
    )


def attachment_download(ctx: SlotContext, ts: datetime) -> FileEvent:
    return FileEvent(
        **ctx.envelope(ts, "endpoint.events.file", "file-created"),
        file_name=ATTACHMENT,
        file_path=_download_path(ctx),
        size=ctx.values.size(200_000, 2_000_000),
        extension="exe",
        md5=_malware_md5(ctx),
        sha256=ctx.remember("malware_sha256", ctx.values.sha256),
        process_name="outlook.exe",
        pid=ctx.remember("outlook_pid", ctx.values.pid),
    )


def malware_execution(ctx: SlotContext, ts: datetime) -> ProcessEvent:
    return ProcessEvent(
        **ctx.envelope(ts, "endpoint.events.process", "process-started"),
        process_name=ATTACHMENT,
        pid=_malware_pid(ctx),
        ppid=ctx.remember("explorer_pid", ctx.values.pid),
        command_line=f"\"{_download_path(ctx)}\"",
        executable=_download_path(ctx),
        parent_name="explorer.exe",
    )


def c2_connection(ctx: SlotContext, ts: datetime) -> NetworkEvent:
    return NetworkEvent(
        **ctx.envelope(ts, "network.flows", "network-connection"),
        source_ip=ctx.remember("host_ip", ctx.values.generate_internal_ip),
        source_port=ctx.values.ephemeral_port(),
        destination_ip=C2_IP,
        destination_port=443,
        protocol="tcp",
        bytes=ctx.values.size(1_000, 50_000),
        process_name=ATTACHMENT,
        pid=_malware_pid(ctx),
    )


def registry_persistence(ctx: SlotContext, ts: datetime) -> RegistryEvent:
    return RegistryEvent(
        **ctx.envelope(ts, "endpoint.events.registry", "registry-value-set"),
        key="HKEY_CURRENT_USER\\Software\\Microsoft\\Windows\\CurrentVersion\\Run",
        value="WindowsUpdate",
        data=(_download_path(ctx),),
        process_name=ATTACHMENT,
        pid=_malware_pid(ctx),
    )


def credential_access(ctx: SlotContext, ts: datetime) -> AuthenticationEvent:
    return AuthenticationEvent(
        **ctx.envelope(ts, "security", "logon-failed",
                       message="An account failed to log on"),
        event_id=4625,
        outcome="failure",
        target_user="Administrator",
        source_ip=ctx.remember("host_ip", ctx.values.generate_internal_ip),
        process_name=ATTACHMENT,
        pid=_malware_pid(ctx),
    )


def malware_detection(ctx: SlotContext, ts: datetime) -> SecurityEvent:
    return SecurityEvent(
        **ctx.envelope(ts, "endpoint.alerts", "malware-detected",
                       message=f"TrickBot detected in {ATTACHMENT}"),
        event_category="malware",
        severity=8,
        rule_name="Windows Defender: TrickBot Detection",
        process_name=ATTACHMENT,
        pid=_malware_pid(ctx),
        threat_family="TrickBot",
        threat_name="Trojan:Win32/TrickBot",
        file_name=ATTACHMENT,
        file_md5=_malware_md5(ctx),
    )


def phishing_template(ctx: SlotContext) -> List[TemplateSlot]:
    return [
        TemplateSlot("email_delivery", minutes(30), email_delivery),
        TemplateSlot("email_opened", minutes(25), email_opened),
        TemplateSlot("attachment_download", minutes(20), attachment_download),
        TemplateSlot("malware_execution", minutes(15), malware_execution),
        TemplateSlot("c2_connection", minutes(10), c2_connection),
        TemplateSlot("registry_persistence", minutes(8), registry_persistence),
        TemplateSlot("credential_access", minutes(5), credential_access),
        TemplateSlot("malware_detection", minutes(2), malware_detection),
    ]
