import pytest

from statepulse.ingestion.relevance import is_relevant


class TestIsRelevant:

    @pytest.mark.parametrize("title", [
        "Ban on Artificial Intelligence in Hiring",
        "AI Safety Act",
        "An act relating to ai disclosures",
        "Deepfakes (AI) in elections",
        "ARTIFICIAL INTELLIGENCE task force",
    ])
    def test_matches_explicit_mentions(self, title):
        assert is_relevant(title)

    @pytest.mark.parametrize("title", [
        "Highway Air Quality Standards",
        "This bill regulates air traffic",
        "Said appropriations for the fiscal year",
        "Maintenance of aircraft",
        "",
    ])
    def test_ignores_words_containing_ai(self, title):
        assert not is_relevant(title)

    def test_checks_summary_text(self):
        assert is_relevant("Consumer protection", "Requires disclosure of artificial intelligence use")

    def test_checks_abstracts(self):
        assert is_relevant("HB 12", None, [None, "Establishes an AI advisory council"])

    def test_handles_missing_text(self):
        assert not is_relevant(None, None, None)
