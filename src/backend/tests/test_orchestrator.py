"""Tests for session orchestration across concurrent agents."""

from __future__ import annotations

import random

import pytest

from sciencecollab.agent.domains import domains_for, resolve_mode
from sciencecollab.agent.orchestrator import SessionOrchestrator, new_session
from sciencecollab.agent.peers import AgreementPolicy
from sciencecollab.models.schemas import CollabEventType as T
from sciencecollab.models.schemas import CollabMode, SessionRequest

TOPIC = "dopamine receptor signaling"


class TestDomainResolution:

    def test_modes(self) -> None:
        assert [d.agent_name for d in domains_for(CollabMode.BROAD)] == [
            "AgentBio", "AgentChem", "AgentComp", "AgentClin", "AgentLit",
        ]
        assert [d.agent_name for d in domains_for(CollabMode.DRUG_DISCOVERY)] == [
            "AgentChem", "AgentClin", "AgentBio",
        ]
        assert [d.agent_name for d in domains_for(CollabMode.STRUCTURE)] == ["AgentBio", "AgentComp"]

    @pytest.mark.parametrize("agents,expected", [(2, 2), (9, 5), (1, 1), (0, 3), (-4, 3)])
    def test_agent_override_takes_first_n(self, agents, expected) -> None:
        assert len(domains_for(CollabMode.LITERATURE, agents)) == expected

    def test_unknown_mode_is_broad(self) -> None:
        assert resolve_mode("quantum") == CollabMode.BROAD
        assert resolve_mode(None) == CollabMode.BROAD
        assert SessionRequest(topic="x", mode="quantum").mode == CollabMode.BROAD

    def test_new_session_ids_unique(self) -> None:
        request = SessionRequest(topic=TOPIC)
        assert new_session(request).id != new_session(request).id
        assert new_session(request, "live-fixed").id == "live-fixed"


class TestSessionRun:

    @pytest.mark.asyncio
    async def test_all_tools_fail_broad_session(self, failing_registry, event_log, offline_service,
                                                no_pacing, never_agree) -> None:
        session = new_session(SessionRequest(topic=TOPIC, mode=CollabMode.BROAD))
        orchestrator = SessionOrchestrator(
            session, event_log, registry=failing_registry, service=offline_service,
            pacing=no_pacing, agreement=never_agree,
        )

        summary = await orchestrator.run()

        findings = event_log.of_type(T.FINDING)
        assert len(findings) == 5
        assert all("limited results" in f.payload["text"] for f in findings)
        assert {f.agent for f in findings} == set(session.agent_names)

        done = event_log.of_type(T.SESSION_DONE)
        assert len(done) == 1
        assert done[0] is event_log.events[-1]
        assert done[0].payload == {
            "session_id": session.id,
            "topic": TOPIC,
            "agents": session.agent_names,
            "n_findings": 5,
            "mode": "broad",
        }

        assert summary.done
        assert len(summary.findings) == 5
        assert summary.figures == []

    @pytest.mark.asyncio
    async def test_session_start_roster(self, stub_registry, event_log, offline_service,
                                        no_pacing, never_agree) -> None:
        session = new_session(SessionRequest(topic=TOPIC, mode=CollabMode.DRUG_DISCOVERY))
        await SessionOrchestrator(
            session, event_log, registry=stub_registry(), service=offline_service,
            pacing=no_pacing, agreement=never_agree,
        ).run()

        start = event_log.events[0]
        assert start.type == T.AGENT_STATUS
        assert start.agent == "orchestrator"
        assert start.payload == {
            "status": "session_start",
            "detail": TOPIC,
            "session_id": session.id,
            "agents": ["AgentChem", "AgentClin", "AgentBio"],
            "n_agents": 3,
            "mode": "drug_discovery",
            "mode_label": "Drug Discovery",
        }

    @pytest.mark.asyncio
    async def test_per_agent_ordering(self, stub_registry, event_log, offline_service, no_pacing) -> None:
        registry = stub_registry({
            "uniprot": [{"name": "DRD2", "length": 443}, {"name": "DRD1", "length": 446}],
            "chembl": [{"name": "Haloperidol", "mw": 375.9}, {"name": "Clozapine", "mw": 326.8}],
            "pubmed": [{"title": "A", "year": "2019"}, {"title": "B", "year": "2020"}],
        })
        session = new_session(SessionRequest(topic=TOPIC))
        await SessionOrchestrator(
            session, event_log, registry=registry, service=offline_service, pacing=no_pacing,
            agreement=AgreementPolicy(probability=0.45, rng=random.Random(11)),
        ).run()

        for agent in session.agent_names:
            mine = event_log.for_agent(agent)
            assert mine[-1].payload["status"] == "done"
            assert mine[-2].type == T.FINDING
            assert len([e for e in mine if e.type == T.FINDING]) == 1

            started = {}
            for index, event in enumerate(mine):
                if event.type == T.TOOL_STARTED:
                    started[event.payload["tool"]] = index
                elif event.type == T.TOOL_RESULT:
                    assert started[event.payload["tool"]] < index

    @pytest.mark.asyncio
    async def test_slow_agent_sees_earlier_findings(self, stub_registry, event_log, offline_service,
                                                    no_pacing) -> None:
        registry = stub_registry({"pubmed": 0.2, "crossref": 0.2})
        session = new_session(SessionRequest(topic=TOPIC, mode=CollabMode.LITERATURE))
        always = AgreementPolicy(probability=1.0, rng=random.Random(0))

        await SessionOrchestrator(
            session, event_log, registry=registry, service=offline_service, pacing=no_pacing,
            agreement=always,
        ).run()

        lit_reactions = [e for e in event_log.for_agent("AgentLit") if e.type in (T.AGREEMENT, T.CHALLENGE)]
        assert {e.ref_agent for e in lit_reactions} == {"AgentBio", "AgentComp"}

    @pytest.mark.asyncio
    async def test_summary_collects_results_and_figures(self, stub_registry, event_log, offline_service,
                                                        no_pacing, never_agree) -> None:
        registry = stub_registry({"uniprot": [{"name": "DRD2", "length": 443}, {"name": "DRD1", "length": 446}]})
        session = new_session(SessionRequest(topic=TOPIC, mode=CollabMode.STRUCTURE))
        orchestrator = SessionOrchestrator(
            session, event_log, registry=registry, service=offline_service,
            pacing=no_pacing, agreement=never_agree,
        )

        summary = await orchestrator.run()

        assert summary.mode == CollabMode.STRUCTURE
        assert summary.agents == ["AgentBio", "AgentComp"]
        assert "uniprot" in summary.tools_used and "arxiv" in summary.tools_used
        assert [f.tool for f in summary.figures] == ["uniprot"]
        uniprot = [r for r in summary.results if r.tool == "uniprot"]
        assert uniprot[0].agent == "AgentBio"
        assert uniprot[0].count == 2
        assert uniprot[0].sample == ["DRD2", "DRD1"]
