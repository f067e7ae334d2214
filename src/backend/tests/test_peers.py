"""Tests for peer challenge analysis, agreement and the shared finding log."""

from __future__ import annotations

import asyncio
import random

import pytest

from sciencecollab.agent.peers import AgreementPolicy, PeerAnalyzer, PeerFindingLog
from sciencecollab.models.schemas import Finding, ToolResult

IC50_FINDING = "[CHEMISTRY] Haloperidol binds DRD2 with an IC50 of 1.2 nM across assays."


def uniprot_hit() -> ToolResult:
    return ToolResult(
        tool="uniprot",
        summary="Found 1 proteins",
        items=[{"accession": "P14416", "name": "D(2) dopamine receptor", "length": 443}],
    )


def pdb_hit() -> ToolResult:
    return ToolResult(tool="pdb", summary="Found 1 PDB structures", items=[{"pdb_id": "6CM4", "score": 1.0}])


class TestPeerAnalyzer:

    def test_ic50_triggers_biology_challenge(self) -> None:
        analysis = PeerAnalyzer().evaluate("biology", [uniprot_hit()], IC50_FINDING)

        assert analysis.should_challenge
        assert analysis.justification.startswith("From a biology perspective")
        assert 'uniprot (e.g. "D(2) dopamine receptor")' in analysis.justification
        assert "complementary evidence" in analysis.justification

    def test_at_most_two_results_cited(self) -> None:
        results = [uniprot_hit(), pdb_hit(), uniprot_hit()]
        analysis = PeerAnalyzer().evaluate("biology", results, IC50_FINDING)

        assert analysis.justification.count("uniprot") == 1
        assert "uniprot (e.g." in analysis.justification and "+ pdb data" in analysis.justification

    def test_trigger_without_own_data(self) -> None:
        failed = ToolResult.failed("uniprot", "UniProt search failed", "connection refused")
        analysis = PeerAnalyzer().evaluate("biology", [failed], IC50_FINDING)

        assert analysis.should_challenge
        assert analysis.justification.endswith("warrants additional investigation.")

    def test_match_is_case_insensitive(self) -> None:
        analysis = PeerAnalyzer().evaluate("clinical", [], "An IN SILICO screen ranked 40 ligands.")
        assert analysis.should_challenge

    def test_no_trigger_no_challenge(self) -> None:
        analysis = PeerAnalyzer().evaluate("biology", [uniprot_hit()], "Meta-analysis of 12 cohort studies.")
        assert not analysis.should_challenge
        assert analysis.justification == ""

    def test_unknown_domain_never_challenges(self) -> None:
        assert not PeerAnalyzer().evaluate("astronomy", [uniprot_hit()], IC50_FINDING).should_challenge


class TestAgreementPolicy:

    def test_probability_bounds(self) -> None:
        never = AgreementPolicy(probability=0.0, rng=random.Random(1))
        always = AgreementPolicy(probability=1.0, rng=random.Random(1))

        assert not any(never.should_agree() for _ in range(50))
        assert all(always.should_agree() for _ in range(50))

    def test_seeded_rolls_reproducible(self) -> None:
        first = AgreementPolicy(probability=0.45, rng=random.Random(7))
        second = AgreementPolicy(probability=0.45, rng=random.Random(7))

        assert [first.should_agree() for _ in range(20)] == [second.should_agree() for _ in range(20)]

    def test_note_quotes_shared_terms(self) -> None:
        note = AgreementPolicy.note("biology", [uniprot_hit(), pdb_hit()])
        assert note == 'Our biology data (including "D(2) dopamine receptor") corroborates this finding.'

    def test_note_without_data(self) -> None:
        assert AgreementPolicy.note("clinical", []) == "Consistent with our clinical analysis."


class TestPeerFindingLog:

    @pytest.mark.asyncio
    async def test_snapshot_is_frozen_at_read_time(self) -> None:
        log = PeerFindingLog()
        await log.append(Finding(agent="AgentBio", text="a", confidence=0.6))
        snapshot = log.snapshot()

        await log.append(Finding(agent="AgentChem", text="b", confidence=0.6))

        assert [f.agent for f in snapshot] == ["AgentBio"]
        assert len(log) == 2

    @pytest.mark.asyncio
    async def test_concurrent_appends_all_land(self) -> None:
        log = PeerFindingLog()
        await asyncio.gather(*[
            log.append(Finding(agent=f"Agent{i}", text=str(i), confidence=0.5)) for i in range(25)
        ])
        assert sorted(f.text for f in log) == sorted(str(i) for i in range(25))
