"""Tests for figure synthesis: family dispatch, binning and determinism."""

from __future__ import annotations

import pytest

from sciencecollab.agent.figures import (
    CategoryCounts,
    FigureSynthesizer,
    LengthHistogram,
    RankedScores,
    WeightHistogram,
    YearSeries,
)


@pytest.fixture
def figures() -> FigureSynthesizer:
    return FigureSynthesizer()


class TestYearSeries:

    def test_two_distinct_years(self, figures) -> None:
        items = [{"year": "2019"}, {"year": "2020"}, {"year": "2020"}]
        figure = figures.render("pubmed", items)

        assert figure is not None
        assert figure.kind == "year_histogram"
        assert figure.labels == ["2019", "2020"]
        assert figure.counts == [1.0, 2.0]
        assert figure.svg.lstrip().startswith("<?xml")
        assert "<svg" in figure.svg

    def test_single_year_gives_no_figure(self, figures) -> None:
        assert figures.render("crossref", [{"year": 2020}, {"year": 2020}]) is None

    def test_year_sources_and_invalid_values(self, figures) -> None:
        items = [
            {"pubYear": "2018"},
            {"published": "2021-05-03"},
            {"year": "n.d."},
            {"year": "0999"},
            {"title": "no year at all"},
        ]
        variant = figures.extract("europepmc", items)

        assert isinstance(variant, YearSeries)
        assert variant.years == ("2018", "2021")


class TestNumericHistograms:

    def test_weights_binned_into_fixed_ranges(self, figures) -> None:
        items = [{"mw": 120.0}, {"mw": "300.4"}, {"mw": 310}, {"mw": 2000}, {"mw": None}, {"mw": 900}]
        variant = figures.extract("chembl", items)

        assert isinstance(variant, WeightHistogram)
        labels, counts = variant.bins()
        assert labels == ["<150", "150", "250", "350", "450", "600", "800+"]
        assert counts == [1.0, 0.0, 2.0, 0.0, 0.0, 0.0, 1.0]

    def test_one_weight_is_not_enough(self, figures) -> None:
        assert figures.render("pubchem", [{"mw": 180.2}, {"mw": 10.0}]) is None

    def test_lengths_in_eight_equal_bins(self, figures) -> None:
        variant = figures.extract("uniprot", [{"length": 100}, {"length": 800}, {"length": 0}])

        assert isinstance(variant, LengthHistogram)
        labels, counts = variant.bins()
        assert len(labels) == 8
        assert labels[0] == "0-100"
        assert counts[1] == 1.0 and counts[-1] == 1.0
        assert sum(counts) == 2


class TestRankedAndCategorical:

    def test_pdb_top_scores_descending(self, figures) -> None:
        items = [{"pdb_id": f"{i}ABC", "score": s} for i, s in enumerate([0.2, 0.9, 0.5])]
        variant = figures.extract("pdb", items)

        assert isinstance(variant, RankedScores)
        assert [name for name, _ in variant.entries] == ["1ABC", "2ABC", "0ABC"]

    def test_string_ranks_partners_only(self, figures) -> None:
        items = [
            {"name": "DRD2", "kind": "query_protein"},
            {"name": "GNAI2", "score": 0.95, "kind": "interaction_partner"},
            {"name": "ARRB2", "score": 0.99, "kind": "interaction_partner"},
        ]
        labels, counts = figures.extract("string", items).bins()
        assert labels == ["ARRB2", "GNAI2"]
        assert counts == [0.99, 0.95]

    def test_trial_phases_counted(self, figures) -> None:
        items = [{"phase": "PHASE2"}, {"phase": "PHASE1, PHASE2"}, {"phase": "PHASE2"}, {}]
        figure = figures.render("clinicaltrials", items)

        assert figure.kind == "category_counts"
        assert dict(zip(figure.labels, figure.counts)) == {"N/A": 1.0, "Ph1/Ph2": 1.0, "Ph2": 2.0}

    def test_routes_lowercased_most_common_first(self, figures) -> None:
        items = [{"route": "ORAL"}, {"route": "oral"}, {"route": "INTRAVENOUS"}, {"route": ""}]
        variant = figures.extract("openfda", items)

        assert isinstance(variant, CategoryCounts)
        assert variant.counts[0] == ("oral", 2)
        assert variant.total == 4


class TestDispatch:

    def test_unknown_tool_gives_no_figure(self, figures) -> None:
        assert figures.render("ncbi_gene", [{"name": "DRD2"}]) is None

    def test_empty_items_give_no_figure(self, figures) -> None:
        assert figures.render("pubmed", []) is None

    @pytest.mark.parametrize("tool,items", [
        ("arxiv", [{"year": "2022"}, {"year": "2023"}]),
        ("pubchem", [{"mw": 180.2}, {"mw": 151.2}]),
        ("kegg", [{"category": "pathway"}, {"category": "disease"}]),
        ("reactome", [{"name": "Dopamine Neurotransmitter Release Cycle"}, {"name": "GPCR signaling"}]),
    ])
    def test_render_is_deterministic(self, figures, tool, items) -> None:
        first = figures.render(tool, items)
        second = FigureSynthesizer().render(tool, [dict(it) for it in items])

        assert first is not None
        assert first == second
