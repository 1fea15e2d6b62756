"""
CATTO Interface Layer

Case reconstruction (model call #1) and user-facing messages.
"""

from catto.interface.case_reconstructor import CASE_RECONSTRUCTION_PROMPT, CaseReconstructor
from catto.interface.messages import error_code_for, user_message

__all__ = [
    "CaseReconstructor",
    "CASE_RECONSTRUCTION_PROMPT",
    "error_code_for",
    "user_message",
]
