from __future__ import annotations

import re
from html import escape
from typing import Any

from smart_recruiter.types import SenderIdentity


def default_subject(job_offer: Any, sender: SenderIdentity) -> str:
    return f"Application for {getattr(job_offer, 'title', '')} - {sender.full_name}"


def attachment_filename(sender: SenderIdentity) -> str:
    name = re.sub(r"\s+", "_", sender.full_name.strip())
    return f"CV_{name}.pdf"


def render_text(letter: str, sender: SenderIdentity, job_url: str | None = None) -> str:
    lines = [letter.strip(), "", "---", "", "Best regards,", sender.full_name, sender.email]
    if sender.phone:
        lines.append(f"Tel: {sender.phone}")
    if job_url:
        lines.extend(["", f"Job reference: {job_url}"])
    return "\n".join(lines) + "\n"


def render_html(letter: str, sender: SenderIdentity, job_url: str | None = None) -> str:
    paragraphs = "\n".join(
        f'    <p style="margin: 10px 0;">{escape(line)}</p>' for line in letter.strip().split("\n")
    )
    signature = [
        '    <p style="margin: 5px 0;"><strong>Best regards,</strong></p>',
        f'    <p style="margin: 5px 0;"><strong>{escape(sender.full_name)}</strong></p>',
        f'    <p style="margin: 5px 0; color: #666;">{escape(sender.email)}</p>',
    ]
    if sender.phone:
        signature.append(f'    <p style="margin: 5px 0; color: #666;">Tel: {escape(sender.phone)}</p>')

    parts = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
        '  <div style="white-space: pre-wrap; line-height: 1.6; color: #333;">',
        paragraphs,
        "  </div>",
        '  <div style="margin-top: 30px; padding-top: 20px; border-top: 2px solid #eee;">',
        *signature,
        "  </div>",
    ]
    if job_url:
        safe_url = escape(job_url, quote=True)
        parts.extend(
            [
                '  <div style="margin-top: 20px; padding: 10px; background-color: #f5f5f5; '
                'border-left: 4px solid #4CAF50;">',
                '    <p style="margin: 0; font-size: 12px; color: #666;">',
                f'      Job reference: <a href="{safe_url}" style="color: #4CAF50;">{safe_url}</a>',
                "    </p>",
                "  </div>",
            ]
        )
    parts.append("</div>")
    return "\n".join(parts)
