"""Shared fixtures for the science collaboration test suite."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from sciencecollab.agent.peers import AgreementPolicy
from sciencecollab.agent.runner import Pacing
from sciencecollab.models.schemas import CollabEvent, CollabEventType, ToolResult
from sciencecollab.services.reasoning import ReasoningService
from sciencecollab.tools.base import ToolAdapter
from sciencecollab.tools.biology import NCBIGeneTool, PDBTool, ReactomeTool, StringTool, UniProtTool
from sciencecollab.tools.chemistry import ChEMBLTool, KEGGTool, OpenTargetsTool, PubChemTool
from sciencecollab.tools.clinical import ClinicalTrialsTool, OpenFDATool
from sciencecollab.tools.literature import (
    ArXivTool,
    CrossRefTool,
    EuropePMCTool,
    PubMedTool,
    SemanticScholarTool,
)
from sciencecollab.tools.registry import ToolRegistry

ADAPTER_CLASSES = (
    PubMedTool, EuropePMCTool, CrossRefTool, ArXivTool, SemanticScholarTool,
    UniProtTool, PDBTool, NCBIGeneTool, StringTool, ReactomeTool,
    ChEMBLTool, PubChemTool, OpenTargetsTool, KEGGTool,
    ClinicalTrialsTool, OpenFDATool,
)
ALL_TOOLS = tuple(cls.name for cls in ADAPTER_CLASSES)


def mock_client(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
    """AsyncClient whose every request is answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


# ---------------------------------------------------------------------------
# Stub tools
# ---------------------------------------------------------------------------


class StubTool(ToolAdapter):
    """
    In-process tool: returns fixed items, raises, or sleeps before answering.
    """

    def __init__(
        self,
        name: str,
        items: Optional[List[Dict[str, Any]]] = None,
        delay: float = 0.0,
        fail: Optional[Exception] = None,
        timeout: float = 5.0,
    ):
        super().__init__(client=mock_client(refuse_connection), timeout=timeout)
        self.name = name
        self.label = name
        self.items = items or []
        self.delay = delay
        self.fail = fail
        self.calls: List[str] = []

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None:
            raise self.fail
        if not self.items:
            return self._empty(query)
        names = "; ".join(str(it.get("name") or it.get("title") or "") for it in self.items)
        return self._result(list(self.items), f"Found {len(self.items)} records", names)


@pytest.fixture
def stub_registry() -> Callable[..., ToolRegistry]:
    """
    Factory: a registry with a StubTool for every known tool name.

    Overrides map a tool name to a list of items (success), an Exception
    (failure) or a float (seconds to hang before returning nothing).
    """

    def build(overrides: Optional[Dict[str, Any]] = None) -> ToolRegistry:
        overrides = overrides or {}
        tools = []
        for name in ALL_TOOLS:
            override = overrides.get(name)
            if isinstance(override, Exception):
                tools.append(StubTool(name, fail=override))
            elif isinstance(override, (int, float)):
                tools.append(StubTool(name, delay=float(override), timeout=60.0))
            else:
                tools.append(StubTool(name, items=override))
        return ToolRegistry(tools)

    return build


@pytest.fixture
def failing_registry() -> ToolRegistry:
    """All sixteen real adapters behind a network that refuses every connection."""
    client = mock_client(refuse_connection)
    return ToolRegistry([cls(client=client) for cls in ADAPTER_CLASSES])


# ---------------------------------------------------------------------------
# Reasoning service
# ---------------------------------------------------------------------------


class ScriptedService(ReasoningService):
    """Reasoning service that answers every prompt with a fixed reply."""

    def __init__(self, reply: Optional[str]):
        super().__init__(base_url="http://reasoning.test", api_key="test")
        self.reply = reply
        self.prompts: List[str] = []

    async def generate(self, prompt: str, max_tokens: int = 256, timeout: float = 15.0,
                       temperature: float = 0.3) -> Optional[str]:
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def offline_service() -> ReasoningService:
    return ReasoningService(base_url="", api_key="")


@pytest.fixture
def scripted_service() -> Callable[[Optional[str]], ScriptedService]:
    return ScriptedService


# ---------------------------------------------------------------------------
# Pacing, agreement, event capture
# ---------------------------------------------------------------------------


@pytest.fixture
def no_pacing() -> Pacing:
    return Pacing(enabled=False)


@pytest.fixture
def never_agree() -> AgreementPolicy:
    return AgreementPolicy(probability=0.0, rng=random.Random(0))


class EventLog:
    """Event sink that records everything it is handed."""

    def __init__(self):
        self.events: List[CollabEvent] = []

    def __call__(self, event: CollabEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: CollabEventType) -> List[CollabEvent]:
        return [e for e in self.events if e.type == event_type]

    def for_agent(self, agent: str) -> List[CollabEvent]:
        return [e for e in self.events if e.agent == agent]


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()
