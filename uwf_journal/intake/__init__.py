"""
UWF Journal AI Intake Module

Turns a free-form trade description into a structured proposal using an
external generative-AI service, and re-checks it against the account rules.
"""

from .client import GeminiIntakeClient, IntakeResponse
from .policy import RESPONSE_SCHEMA, SYSTEM_PROMPT, merge_flags, review_proposal
from .schema import ProposedTrade
from .session import IntakeSession, IntakeState

__all__ = [
    "GeminiIntakeClient",
    "IntakeResponse",
    "IntakeSession",
    "IntakeState",
    "ProposedTrade",
    "RESPONSE_SCHEMA",
    "SYSTEM_PROMPT",
    "merge_flags",
    "review_proposal",
]
