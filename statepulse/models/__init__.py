"""Data models module."""

from statepulse.models.legislation import (
    Abstract,
    BillVersion,
    HistoryEvent,
    LegislativeRecord,
    SourceLink,
    Sponsor,
    SummarySource,
)

from statepulse.models.executive_order import (
    ExecutiveOrderRecord,
    PolicyDocument,
    to_display,
)

from statepulse.models.vote import StateVote, VoteCount, VoterPosition
from statepulse.models.legislator import StateLegislator
from statepulse.models.checkpoint import GlobalWatermark, RunCheckpoint, RunCounters

__all__ = [
    # Legislation
    "Abstract",
    "BillVersion",
    "HistoryEvent",
    "LegislativeRecord",
    "SourceLink",
    "Sponsor",
    "SummarySource",
    # Executive orders
    "ExecutiveOrderRecord",
    "PolicyDocument",
    "to_display",
    # Votes and people
    "StateVote",
    "VoteCount",
    "VoterPosition",
    "StateLegislator",
    # Progress
    "GlobalWatermark",
    "RunCheckpoint",
    "RunCounters",
]
