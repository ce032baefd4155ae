"""Tests for synonym graph and Dutch morphological expansion."""
import pytest

from services.term_expander import SynonymGraph, TermExpander, plural_forms, singular_forms


class TestSynonymGraph:
    def test_is_symmetric(self):
        graph = SynonymGraph()
        for term in list(graph._adjacency):
            for related in graph.related(term):
                assert term in graph.related(related), f"{related} -> {term} missing"

    def test_custom_groups(self):
        graph = SynonymGraph([["Auto", "wagen"], ["fiets", "rijwiel"]])
        assert graph.related("auto") == {"wagen"}
        assert graph.related("WAGEN") == {"auto"}
        assert "fiets" in graph
        assert graph.related("onbekend") == set()


class TestMorphology:
    @pytest.mark.parametrize("plural,singular", [
        ("rubrieken", "rubriek"),
        ("scholen", "school"),
        ("brieven", "brief"),
        ("huizen", "huis"),
        ("katten", "kat"),
        ("categorieën", "categorie"),
        ("cijfers", "cijfer"),
        ("foto's", "foto"),
    ])
    def test_singular_forms(self, plural, singular):
        assert singular in singular_forms(plural)

    def test_non_plural_has_no_singular(self):
        assert singular_forms("les") == set()

    def test_plural_forms(self):
        assert "rubrieken" in plural_forms("rubriek")
        assert "lessen" in plural_forms("les")
        assert "categorieën" in plural_forms("categorie")
        assert "toetsen" in plural_forms("toets")


class TestTermExpander:
    def test_rubrieken_expansion(self):
        expanded = TermExpander().expand(["rubrieken"])
        assert {"rubrieken", "rubriek", "categorie", "criteria"} <= expanded

    def test_synonyms_found_through_plural(self):
        expanded = TermExpander().expand(["toetsen"])
        assert "examen" in expanded

    def test_synonyms_found_through_ien_plural(self):
        expanded = TermExpander().expand(["categorieën"])
        assert {"categorie", "rubriek", "criteria"} <= expanded
        assert "categoriee" not in expanded

    def test_singular_query_gets_plural_variants(self):
        assert "rubrieken" in TermExpander().expand(["rubriek"])

    def test_stemming_of_long_terms(self):
        expander = TermExpander()
        assert expander.stem("beoordeling") == "beoordel"
        assert expander.stem("kort") == ""
        assert "beoordel" in expander.expand(["beoordeling"])

    def test_single_characters_are_dropped(self):
        expanded = TermExpander().expand(["a", "x", "rooster"])
        assert "a" not in expanded and "x" not in expanded
        assert "planning" in expanded

    def test_case_is_normalized(self):
        assert "rubriek" in TermExpander().expand(["RUBRIEKEN"])
