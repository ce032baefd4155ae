# services/term_expander.py
"""Query term expansion: synonyms plus Dutch morphological variants.

Recall over precision: a wrong expansion only scores when it actually occurs
in a document, and whole-word name hits dominate the ranking anyway.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Set

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

# Each group is a set of mutually related terms (Dutch + English, education domain).
SYNONYM_GROUPS: List[List[str]] = [
    ["rubriek", "categorie", "beoordelingsschema", "criteria", "rubric", "category"],
    ["beoordeling", "evaluatie", "assessment", "waardering", "becijfering"],
    ["toets", "examen", "tentamen", "proefwerk", "test", "exam"],
    ["leerling", "student", "scholier", "cursist", "pupil"],
    ["docent", "leraar", "lerares", "leerkracht", "onderwijzer", "teacher"],
    ["les", "lesson", "college", "instructie"],
    ["lesplan", "lesvoorbereiding", "lesontwerp", "lesbrief"],
    ["opdracht", "taak", "opgave", "oefening", "assignment", "exercise"],
    ["cijfer", "score", "resultaat", "grade", "result"],
    ["verslag", "rapport", "rapportage", "report"],
    ["planning", "rooster", "jaarplanning", "schedule", "timetable"],
    ["leerdoel", "doelstelling", "leeruitkomst", "objective", "goal"],
    ["feedback", "terugkoppeling", "commentaar", "comment"],
    ["handleiding", "instructies", "gids", "manual", "guide"],
    ["presentatie", "voordracht", "presentation", "slides"],
    ["onderzoek", "studie", "research", "analyse", "analysis"],
    ["vergadering", "overleg", "bespreking", "meeting"],
    ["notulen", "verslaglegging", "minutes"],
    ["curriculum", "leerplan", "studieprogramma", "syllabus"],
    ["stage", "praktijk", "internship", "werkplek"],
    ["portfolio", "dossier", "bewijsmateriaal"],
    ["factuur", "rekening", "invoice", "bill"],
    ["contract", "overeenkomst", "agreement"],
    ["begroting", "budget", "financiën", "kosten"],
    ["beleid", "reglement", "protocol", "policy"],
    ["formulier", "sjabloon", "template", "form"],
]

VOWELS = set("aeiouy")

# Longest suffixes first; only the first match is stripped.
STEM_SUFFIXES = (
    "ingen", "heden", "ische", "lijke", "aties", "ende",
    "ing", "heid", "isch", "lijk", "baar", "bare", "atie", "eren", "elen", "tje", "je",
)


class SynonymGraph:
    """Undirected term graph; symmetric by construction."""

    def __init__(self, groups: Iterable[Iterable[str]] = SYNONYM_GROUPS):
        self._adjacency: Dict[str, Set[str]] = defaultdict(set)
        for group in groups:
            members = {term.lower().strip() for term in group if term.strip()}
            for term in members:
                self._adjacency[term] |= members - {term}

    def related(self, term: str) -> Set[str]:
        return set(self._adjacency.get(term.lower(), ()))

    def __contains__(self, term: str) -> bool:
        return term.lower() in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)


def singular_forms(term: str) -> Set[str]:
    """Singular candidates for a Dutch plural; empty when the term does not look plural."""
    forms: Set[str] = set()
    if term.endswith("'s") and len(term) > 3:
        forms.add(term[:-2])
    elif term.endswith("ën") and len(term) > 4:
        forms.add(term[:-2])                          # categorieën -> categorie
    elif term.endswith("en") and len(term) > 4:
        base = term[:-2]
        forms.add(base)
        if len(base) > 2 and base[-1] == base[-2] and base[-1] not in VOWELS:
            forms.add(base[:-1])                          # katten -> kat
        elif len(base) > 3 and base[-2] in VOWELS and base[-1] not in VOWELS and base[-3] not in VOWELS:
            forms.add(base[:-1] + base[-2] + base[-1])    # scholen -> school
        if base.endswith("v"):
            forms.add(base[:-1] + "f")                    # brieven -> brief
        elif base.endswith("z"):
            forms.add(base[:-1] + "s")                    # huizen -> huis
    elif term.endswith("s") and not term.endswith("ss") and len(term) > 3:
        forms.add(term[:-1])
    return forms


def plural_forms(term: str) -> Set[str]:
    """Plausible Dutch plurals for a singular term."""
    if term.endswith("ie"):
        return {term + "ën", term + "s"}
    if term.endswith("e"):
        return {term + "n", term + "s"}
    forms = {term + "en", term + "s"}
    if len(term) > 2 and term[-1] not in VOWELS and term[-2] in VOWELS and term[-3] not in VOWELS:
        forms.add(term + term[-1] + "en")                 # les -> lessen
    return forms


class TermExpander:
    """Expands tokenized query terms into the set the scorer searches for."""

    def __init__(
        self,
        graph: SynonymGraph = None,
        min_stem_length: int = 4,
        stem_from_length: int = 7,
    ):
        self.graph = graph or SynonymGraph()
        self.min_stem_length = min_stem_length
        self.stem_from_length = stem_from_length

    def stem(self, term: str) -> str:
        """Strip one common noun/verb ending; returns "" when no plausible stem results."""
        if len(term) < self.stem_from_length:
            return ""
        for suffix in STEM_SUFFIXES:
            if term.endswith(suffix):
                candidate = term[: -len(suffix)]
                return candidate if len(candidate) >= self.min_stem_length else ""
        return ""

    def expand(self, terms: Iterable[str]) -> Set[str]:
        terms = list(terms)
        expanded: Set[str] = set()

        for raw in terms:
            term = raw.lower().strip()
            if len(term) <= 1:
                continue
            expanded.add(term)

            singulars = singular_forms(term)
            variants = singulars or plural_forms(term)
            expanded |= variants

            for base in {term} | singulars:
                expanded |= self.graph.related(base)

            stem = self.stem(term)
            if stem:
                expanded.add(stem)

        result = {t for t in expanded if len(t) > 1}
        logger.debug(f"Expanded {len(terms)} query terms into {len(result)} search terms")
        return result
