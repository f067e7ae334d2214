"""Tests for the data-source adapters and the tool registry."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from sciencecollab.agent.domains import AGENT_DOMAINS
from sciencecollab.tools import MAX_ITEMS, build_default_registry
from sciencecollab.tools.base import SUMMARY_BUDGET
from sciencecollab.tools.biology import UniProtTool
from sciencecollab.tools.clinical import ClinicalTrialsTool
from sciencecollab.tools.literature import EuropePMCTool, PubMedTool
from sciencecollab.tools.registry import ToolRegistry

from conftest import ADAPTER_CLASSES, StubTool, mock_client, refuse_connection


class TestPubMed:

    @pytest.mark.asyncio
    async def test_search_then_summary(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            if request.url.path.endswith("esearch.fcgi"):
                return httpx.Response(200, json={"esearchresult": {"idlist": ["111", "222"]}})
            return httpx.Response(200, json={"result": {
                "111": {"title": "Dopamine D2 receptor signaling", "pubdate": "2019 Mar",
                        "authors": [{"name": "Smith J"}], "fulljournalname": "Cell"},
                "222": {"title": "Biased agonism at D1", "pubdate": "2021",
                        "authors": [], "fulljournalname": "Nature"},
            }})

        tool = PubMedTool(client=mock_client(handler))
        result = await tool.run("dopamine receptor signaling")

        assert result.ok
        assert [it["pmid"] for it in result.items] == ["111", "222"]
        assert result.items[0]["year"] == "2019"
        assert result.items[1]["authors"] == "Unknown"
        assert result.summary.startswith("Found 2 papers")
        assert seen[0].endswith("esearch.fcgi") and seen[1].endswith("esummary.fcgi")

    @pytest.mark.asyncio
    async def test_no_ids_is_empty_not_error(self) -> None:
        tool = PubMedTool(client=mock_client(
            lambda r: httpx.Response(200, json={"esearchresult": {"idlist": []}})
        ))
        result = await tool.run("nothing at all")
        assert result.error is None
        assert result.items == []
        assert "nothing at all" in result.summary


class TestEuropePMC:

    @pytest.mark.asyncio
    async def test_items_carry_year_and_citations(self) -> None:
        payload = {
            "hitCount": 42,
            "resultList": {"result": [
                {"pmid": "1", "title": "A", "pubYear": "2020", "citedByCount": "7", "source": "MED"},
                {"pmid": "2", "title": "B", "pubYear": "2018", "source": "MED"},
            ]},
        }
        tool = EuropePMCTool(client=mock_client(lambda r: httpx.Response(200, json=payload)))
        result = await tool.run("protein folding")

        assert [it["year"] for it in result.items] == ["2020", "2018"]
        assert result.items[0]["citedByCount"] == 7
        assert result.items[1]["citedByCount"] == 0
        assert "Found 42 articles (showing 2)" in result.summary


class TestUniProt:

    @pytest.mark.asyncio
    async def test_parses_names_and_lengths(self) -> None:
        payload = {"results": [{
            "primaryAccession": "P14416",
            "proteinDescription": {"recommendedName": {"fullName": {"value": "D(2) dopamine receptor"}}},
            "genes": [{"geneName": {"value": "DRD2"}}],
            "organism": {"scientificName": "Homo sapiens"},
            "sequence": {"length": 443},
        }]}
        tool = UniProtTool(client=mock_client(lambda r: httpx.Response(200, json=payload)))
        result = await tool.run("DRD2")

        item = result.items[0]
        assert item == {
            "accession": "P14416",
            "name": "D(2) dopamine receptor",
            "gene": "DRD2",
            "organism": "Homo sapiens",
            "length": 443,
        }
        assert "P14416" in result.summary


class TestClinicalTrials:

    @pytest.mark.asyncio
    async def test_phases_joined(self) -> None:
        payload = {"studies": [
            {"protocolSection": {
                "identificationModule": {"nctId": "NCT01", "briefTitle": "Trial one"},
                "statusModule": {"overallStatus": "RECRUITING"},
                "designModule": {"phases": ["PHASE1", "PHASE2"]},
            }},
            {"protocolSection": {"identificationModule": {"nctId": "NCT02"}}},
        ]}
        tool = ClinicalTrialsTool(client=mock_client(lambda r: httpx.Response(200, json=payload)))
        result = await tool.run("parkinson")

        assert result.items[0]["phase"] == "PHASE1, PHASE2"
        assert result.items[1]["phase"] == "N/A"
        assert result.items[1]["title"] == "Unknown"


class TestFailureBoundary:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("adapter_cls", ADAPTER_CLASSES, ids=lambda c: c.name)
    async def test_network_failure_becomes_error_record(self, adapter_cls) -> None:
        tool = adapter_cls(client=mock_client(refuse_connection), timeout=2.0)
        start = time.monotonic()
        result = await tool.run("dopamine receptor signaling")

        assert result.error is not None
        assert result.items == []
        assert result.tool == adapter_cls.name
        assert time.monotonic() - start < 2.0

    @pytest.mark.asyncio
    async def test_server_error_becomes_error_record(self) -> None:
        tool = EuropePMCTool(client=mock_client(lambda r: httpx.Response(503)))
        result = await tool.run("anything")
        assert result.error is not None
        assert "503" in result.error
        assert not result.ok

    @pytest.mark.asyncio
    async def test_malformed_json_becomes_error_record(self) -> None:
        tool = UniProtTool(client=mock_client(lambda r: httpx.Response(200, text="<html>oops")))
        result = await tool.run("anything")
        assert result.error is not None
        assert result.items == []

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self) -> None:
        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        tool = EuropePMCTool(client=mock_client(hang), timeout=0.1)
        start = time.monotonic()
        result = await tool.run("slow topic")

        assert result.error.startswith("Timed out")
        assert result.items == []
        assert time.monotonic() - start < 1.0

    @pytest.mark.asyncio
    async def test_items_capped(self) -> None:
        tool = StubTool("pubmed", items=[{"title": f"paper {i}"} for i in range(20)])
        result = await tool.run("topic")
        assert len(result.items) == MAX_ITEMS

    @pytest.mark.asyncio
    async def test_summary_capped_including_headline(self) -> None:
        tool = StubTool("pubmed", items=[{"title": "x" * 400}])
        result = await tool.run("topic")
        assert result.summary.startswith("Found 1 records: xxx")
        assert len(result.summary) == SUMMARY_BUDGET


class TestRegistry:

    @pytest.mark.asyncio
    async def test_unknown_tool_is_empty_result(self) -> None:
        stub = StubTool("pubmed", items=[{"title": "x"}])
        registry = ToolRegistry([stub])

        result = await registry.run("alphafold", "protein folding")

        assert result.items == []
        assert result.error is None
        assert "alphafold" in result.summary
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_dispatches_by_name(self) -> None:
        stub = StubTool("kegg", items=[{"name": "Dopaminergic synapse"}])
        registry = ToolRegistry([stub])

        result = await registry.run("kegg", "dopamine")

        assert result.ok
        assert stub.calls == ["dopamine"]

    def test_nameless_adapter_rejected(self) -> None:
        with pytest.raises(ValueError):
            ToolRegistry([StubTool("")])

    def test_default_registry_covers_every_domain_pool(self) -> None:
        registry = build_default_registry()
        assert len(registry) == 16
        for domain in AGENT_DOMAINS:
            for tool in domain.tool_pool:
                assert tool in registry, f"{domain.domain} pool names unknown tool {tool}"
