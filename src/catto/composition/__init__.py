"""
CATTO Composition Layer

Outbound email report built from a verified analysis.
"""

from catto.composition.email_report import (
    EmailDraft,
    build_body,
    build_email_draft,
    build_subject,
)

__all__ = [
    "EmailDraft",
    "build_email_draft",
    "build_subject",
    "build_body",
]
