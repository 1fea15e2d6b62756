"""
CATTO Core Enumerations

This module defines all enumerations used throughout the CATTO system.
These are critical for maintaining type safety and consistent vocabulary.
"""

from enum import Enum


class Judgement(str, Enum):
    """Publication priority derived from the verified match level.

    High priority means the case looks novel against the literature.
    """

    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"


class QueryStrength(str, Enum):
    """Which boolean query was used for the primary search."""

    NARROW = "narrow"
    BROAD = "broad"


class BroadQueryPolicy(str, Enum):
    """How the broad query is derived from the validated blocks."""

    DROP_LAST = "drop_last"  # all blocks but the last when there are more than two
    FIRST_BLOCK = "first_block"


class VerificationNote(str, Enum):
    """Outcome of checking asserted evidence quotes against an abstract."""

    NO_EVIDENCE = "No evidence provided"
    HALLUCINATED = "Hallucinated evidence invalidated"
    PARTIAL = "Partial evidence match"


class RunStatus(str, Enum):
    """Status of an analysis run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    NO_LITERATURE = "no_literature"
    FAILED = "failed"


class GraphNode(str, Enum):
    """Nodes in the LangGraph workflow."""

    RECONSTRUCT_CASE = "reconstruct_case"
    BUILD_QUERY = "build_query"
    RETRIEVE = "retrieve"
    EVALUATE = "evaluate"
    VERIFY = "verify"
    NARRATE = "narrate"
    FINALIZE = "finalize"


class UILanguage(str, Enum):
    """Language of user-facing messages."""

    EN = "en"
    JA = "ja"
