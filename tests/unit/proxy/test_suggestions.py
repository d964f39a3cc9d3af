"""Tests for suggestion reshaping."""

from search_proxy.proxy.suggestions import (
    enrich_suggestions,
    people_enrichment,
    people_suggestions,
    program_suggestions,
)
from tests.fakes.fake_clients import PEOPLE_PAYLOAD, PROGRAMS_PAYLOAD


class TestEnrichSuggestions:
    """Tests for enrich_suggestions()."""

    def test_attaches_tabs(self) -> None:
        suggestions = enrich_suggestions(["biology"], {"f.Tabs|seattleu~ds-staff": "Faculty"})

        assert suggestions == [{"display": "biology", "metadata": {"tabs": ["Faculty & Staff"]}}]

    def test_structured_suggestions_use_display_text(self) -> None:
        suggestions = enrich_suggestions([{"key": "bio", "disp": "Biology"}], {})

        assert suggestions[0]["display"] == "Biology"

    def test_non_list_payload(self) -> None:
        assert enrich_suggestions({"error": "x"}, {}) == []


class TestProgramSuggestions:
    def test_maps_results(self) -> None:
        suggestions = program_suggestions(PROGRAMS_PAYLOAD)

        assert suggestions[0] == {
            "display": "Biology (BS)",
            "metadata": {
                "description": "Study living systems",
                "url": "https://www.seattleu.edu/programs/biology-bs/",
                "level": "Undergraduate",
                "department": "Biology",
            },
        }
        assert suggestions[1]["metadata"]["description"] == ""

    def test_missing_result_packet(self) -> None:
        assert program_suggestions({"response": {}}) == []


class TestPeopleSuggestions:
    def test_maps_results(self) -> None:
        suggestions = people_suggestions(PEOPLE_PAYLOAD)

        assert suggestions[0]["display"] == "Jordan Lee"
        assert suggestions[0]["metadata"]["position"] == "Associate Professor"
        assert suggestions[0]["metadata"]["image"].endswith("jordan-lee.jpg")

    def test_enrichment(self) -> None:
        assert people_enrichment(PEOPLE_PAYLOAD) == {"people": ["Jordan Lee"], "departments": ["Biology"]}
