import pytest

from anidb_metadata.title_resolver import (
    TitleBlock,
    TitleIndex,
    TitleResolver,
    clear_name,
    half_string,
    names_match,
    titles_match,
)


def _index(*blocks: tuple[str, list[str]]) -> TitleIndex:
    body = "".join(
        f'<anime aid="{aid}">'
        + "".join(f'<title type="main" xml:lang="x-jat">{t}</title>' for t in titles)
        + "</anime>\n"
        for aid, titles in blocks
    )
    return TitleIndex(f"<animetitles>\n{body}</animetitles>")


@pytest.fixture
def resolver(title_index_xml) -> TitleResolver:
    return TitleResolver(TitleIndex(title_index_xml.decode("utf-8")))


class TestTitleIndex:
    def test_blocks_in_document_order(self, title_index_xml):
        index = TitleIndex(title_index_xml.decode("utf-8"))

        assert [block.aid for block in index.blocks] == ["1", "23", "5"]
        assert len(index) == 3

    def test_block_titles(self, title_index_xml):
        block = TitleIndex(title_index_xml.decode("utf-8")).blocks[0]

        assert block.titles == ["Seikai no Monshou", "Crest of the Stars"]

    def test_truncated_index_keeps_complete_blocks(self):
        index = TitleIndex('<anime aid="1"><title>A</title></anime><anime aid="2"><ti')

        assert [block.aid for block in index.blocks] == ["1"]

    def test_from_path(self, tmp_path, title_index_xml):
        path = tmp_path / "animetitles.xml"
        path.write_bytes(title_index_xml)

        assert len(TitleIndex.from_path(path)) == 3

    def test_unparsable_block_has_no_titles(self):
        assert TitleBlock(aid="1", body="<title>broken").titles == []


class TestResolve:
    def test_single_candidate(self):
        resolver = TitleResolver(_index(("42", ["Only Show"])))

        assert resolver.resolve("Only Show", "Only Show") == "42"

    def test_no_candidates(self):
        resolver = TitleResolver(_index())

        assert resolver.resolve("Anything", "Anything") is None

    def test_unique_prefix(self, resolver):
        assert resolver.resolve("Crest of the Stars", "Crest of the Stars") == "1"

    def test_most_occurrences_wins(self, resolver):
        # Both blocks contain "Cowboy"; aid 5 names "Cowboy Bebop" twice
        assert resolver.resolve("Cowboy Bebop", "Cowboy Bebop") == "5"

    def test_occurrence_tie_keeps_first(self):
        resolver = TitleResolver(
            _index(("10", ["Test Anime"]), ("11", ["Test Anime"]))
        )

        assert resolver.resolve("Test Anime", "Test Anime") == "10"

    def test_near_match_for_differing_names(self, resolver):
        assert resolver.resolve("Cowboy Bebop: The Movie", "Cowboy Bebop The Movie") == "5"

    def test_no_occurrence_falls_through_to_near_match(self):
        resolver = TitleResolver(
            _index(("10", ["Test Anime Alpha"]), ("11", ["Test Anime-Beta"]))
        )

        assert resolver.resolve("Test Anime Beta", "Test Anime Beta") == "11"

    def test_no_match(self):
        resolver = TitleResolver(
            _index(("10", ["Test Anime Alpha"]), ("11", ["Test Anime Beta"]))
        )

        assert resolver.resolve("Test Anime Gamma", "Test Anime Gamma") is None

    def test_escaped_prefix_matches_raw_xml(self):
        resolver = TitleResolver(_index(("7", ["Tom &amp; Jerry"])))

        assert resolver.resolve("Tom & Jerry", "Tom & Jerry") == "7"

    def test_candidates_deduplicated(self, resolver):
        candidates = resolver.candidates("Cowboy Bebop", "Cowboy Bebop")

        assert [block.aid for block in candidates] == ["23", "5"]


class TestNameMatching:
    @pytest.mark.parametrize(
        "title, name",
        [
            ("Cowboy Bebop", "cowboy bebop"),
            ("Cowboy Bebop", "CowboyBebop"),
            ("Fate/Zero", "Fate/Zero (2011)"),
            ("Naruto Gekijouban", "Naruto Movie"),
            ("Test Anime-Beta", "Test Anime Beta"),
        ],
    )
    def test_matches(self, title, name):
        assert names_match(title, name)

    def test_different_first_character(self):
        assert not names_match("The Bebop", "Bebop")

    def test_squashed_match(self):
        assert names_match("Cowboy Bebop", "Cowboy  Be.bop")

    def test_variant_spellings(self):
        assert names_match("Baccano!", "Baccano")
        assert names_match("Kimi ni Todoke 2wei", "Kimi ni Todoke Zwei")

    def test_year_mismatch_rejects(self):
        assert not titles_match(["Fate/Zero (2011)"], "Fate/Zero (2012)")

    def test_year_match_accepts(self):
        assert titles_match(["Hunter x Hunter (2011)"], "Hunter x Hunter (2011)")

    def test_year_only_in_name(self):
        assert titles_match(["Cowboy Bebop"], "Cowboy Bebop (1998)")


class TestNameHelpers:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Test Anime", "Test "),
            ("abc", "abc"),
            ("abcdef", "abcd"),
            ("Crest of the Stars", "Crest of "),
        ],
    )
    def test_half_string(self, value, expected):
        assert half_string(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Fate/Zero (2011) S2", "Fate/Zero 2"),
            ("Tom & Jerry", "Tom and Jerry"),
            ("K-On!", "K On!"),
            ("Dr. Stone", "Dr Stone"),
        ],
    )
    def test_clear_name(self, value, expected):
        assert clear_name(value) == expected
