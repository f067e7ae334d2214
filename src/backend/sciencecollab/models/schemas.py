"""
Domain models for the science collaboration engine.

These Pydantic models define the structured data flowing between tools,
agents, the orchestrator and the event stream.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string (UTC)."""
    return datetime.now(timezone.utc).isoformat()


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────

class CollabEventType(str, Enum):
    AGENT_STATUS = "AgentStatus"
    TOOL_STARTED = "ToolStarted"
    TOOL_RESULT = "ToolResult"
    FIGURE = "Figure"
    THOUGHT = "Thought"
    FINDING = "Finding"
    CHALLENGE = "Challenge"
    AGREEMENT = "Agreement"
    SESSION_DONE = "SessionDone"
    TIMEOUT = "Timeout"


class CollabMode(str, Enum):
    BROAD = "broad"
    DRUG_DISCOVERY = "drug_discovery"
    STRUCTURE = "structure"
    LITERATURE = "literature"


class AgentPhase(str, Enum):
    PLANNING = "planning"
    RUNNING = "running"
    REACTING = "reacting"
    SYNTHESIZING = "synthesizing"
    DONE = "done"


# ──────────────────────────────────────────────
# Tool results
# ──────────────────────────────────────────────

class ToolResult(BaseModel):
    """Normalized output of one data-source tool call. Failures are data, never exceptions."""
    tool: str = Field(..., description="Registered tool name")
    summary: str = Field("", description="One-line human-readable summary")
    items: List[Dict[str, Any]] = Field(
        default_factory=list, description="Structured records, ordered by relevance"
    )
    error: Optional[str] = Field(None, description="Error message if the call failed")

    @model_validator(mode="after")
    def _error_means_no_items(self) -> "ToolResult":
        if self.error is not None and self.items:
            self.items = []
        return self

    @property
    def ok(self) -> bool:
        return self.error is None and len(self.items) > 0

    @classmethod
    def failed(cls, tool: str, summary: str, error: str) -> "ToolResult":
        return cls(tool=tool, summary=summary, items=[], error=error)

    @classmethod
    def empty(cls, tool: str, summary: str) -> "ToolResult":
        return cls(tool=tool, summary=summary, items=[])


# ──────────────────────────────────────────────
# Events
# ──────────────────────────────────────────────

class CollabEvent(BaseModel):
    type: CollabEventType
    agent: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)
    ref_agent: Optional[str] = None

    def to_json(self) -> str:
        """Single-line JSON wire form (UTF-8, no ASCII escaping)."""
        data = self.model_dump(mode="json")
        if data.get("ref_agent") is None:
            data.pop("ref_agent", None)
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


# ──────────────────────────────────────────────
# Agents, findings and sessions
# ──────────────────────────────────────────────

class AgentDomainConfig(BaseModel):
    """A participating investigator's specialization. Immutable."""
    model_config = ConfigDict(frozen=True)

    suffix: str = Field(..., description="Agent name suffix, e.g. 'Bio'")
    domain: str = Field(..., description="Domain name, e.g. 'biology'")
    focus: str = Field(..., description="Focus description given to the reasoning service")
    tool_pool: Tuple[str, ...] = Field(..., description="Candidate tools, in preference order")
    default_tools: Tuple[str, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _defaults_in_pool(self) -> "AgentDomainConfig":
        stray = [t for t in self.default_tools if t not in self.tool_pool]
        if stray:
            raise ValueError(f"default_tools not in tool_pool: {stray}")
        return self

    @property
    def agent_name(self) -> str:
        return f"Agent{self.suffix}"


class Finding(BaseModel):
    """An agent's final conclusion. Created once, never mutated."""
    model_config = ConfigDict(frozen=True)

    agent: str
    text: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    sources: List[str] = Field(default_factory=list)


class PeerAnalysis(BaseModel):
    should_challenge: bool = False
    justification: str = ""


class Figure(BaseModel):
    """A rendered visual summary of one tool's result set."""
    tool: str
    kind: str = Field(..., description="year_histogram | weight_histogram | length_histogram | ranked_bars | category_counts")
    title: str
    labels: List[str] = Field(default_factory=list)
    counts: List[float] = Field(default_factory=list)
    svg: str = ""


class SessionRequest(BaseModel):
    """Ingress: start a collaboration session."""
    topic: str = Field("protein folding", min_length=1, max_length=500)
    mode: CollabMode = CollabMode.BROAD
    agents: Optional[int] = Field(
        None, description="Participant count override; takes the first N domains"
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _unknown_mode_is_broad(cls, value: Any) -> Any:
        if isinstance(value, CollabMode):
            return value
        try:
            return CollabMode(value)
        except ValueError:
            return CollabMode.BROAD


class Session(BaseModel):
    id: str
    topic: str
    mode: CollabMode
    domains: List[AgentDomainConfig]
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def agent_names(self) -> List[str]:
        return [d.agent_name for d in self.domains]


class AgentRunResult(BaseModel):
    agent: str
    finding: Finding
    tools: List[str] = Field(default_factory=list)
    results: List[ToolResult] = Field(default_factory=list)
    figures: List[Figure] = Field(default_factory=list)


# ──────────────────────────────────────────────
# Finished-session payload (handed to persistence)
# ──────────────────────────────────────────────

class ResultSummary(BaseModel):
    agent: str
    tool: str
    count: int
    summary: str
    sample: List[str] = Field(default_factory=list)


class SessionSummary(BaseModel):
    session_id: str
    topic: str
    mode: CollabMode
    agents: List[str] = Field(default_factory=list)
    findings: List[Finding] = Field(default_factory=list)
    tools_used: List[str] = Field(default_factory=list)
    figures: List[Figure] = Field(default_factory=list)
    results: List[ResultSummary] = Field(default_factory=list)
    done: bool = False
    timed_out: bool = False
