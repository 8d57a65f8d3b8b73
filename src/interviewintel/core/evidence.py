"""Rule-based evidence extraction from response text."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from rapidfuzz import fuzz

from .models import EvidenceSpan, QuestionType

KEYWORD_HIT = "keyword-hit"
QUANTIFIED_CLAIM = "quantified-claim"
EXAMPLE_GIVEN = "example-given"
STRUCTURAL_MARKER = "structural-marker"
CAUSAL_REASONING = "causal-reasoning"
OUTCOME_STATEMENT = "outcome-statement"
OWNERSHIP = "ownership"
SELF_REFLECTION = "self-reflection"
HEDGING = "hedging"
FILLER = "filler"

DETECTOR_ORDER: tuple[str, ...] = (
    KEYWORD_HIT,
    QUANTIFIED_CLAIM,
    EXAMPLE_GIVEN,
    STRUCTURAL_MARKER,
    CAUSAL_REASONING,
    OUTCOME_STATEMENT,
    OWNERSHIP,
    SELF_REFLECTION,
    HEDGING,
    FILLER,
)

_WORD_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+#]*")

_STOPWORDS = frozenset(
    {
        "about", "after", "again", "also", "been", "before", "being", "could", "describe",
        "does", "explain", "from", "have", "here", "into", "just", "know", "like", "made",
        "make", "many", "more", "most", "much", "only", "other", "over", "please", "should",
        "some", "such", "tell", "than", "that", "their", "them", "then", "there", "these",
        "they", "this", "those", "through", "time", "were", "what", "when", "where", "which",
        "while", "will", "with", "would", "your", "yours",
    }
)

DEFAULT_LEXICONS: dict[str, tuple[str, ...]] = {
    QuestionType.TECHNICAL.value: (
        "algorithm", "api", "architecture", "benchmark", "cache", "complexity",
        "concurrency", "database", "deployment", "index", "latency", "memory",
        "microservice", "monitoring", "performance", "profiling", "query", "queue",
        "scalability", "schema", "testing", "throughput", "tradeoff",
    ),
    QuestionType.BEHAVIORAL.value: (
        "collaborate", "communication", "conflict", "deadline", "feedback", "initiative",
        "leadership", "mentor", "priority", "responsibility", "stakeholder", "team",
    ),
    QuestionType.SITUATIONAL.value: (
        "customer", "decision", "escalate", "impact", "option", "plan", "prioritize",
        "risk", "stakeholder", "timeline", "tradeoff",
    ),
}


def _phrase_pattern(phrases: Iterable[str]) -> re.Pattern[str]:
    """Case-insensitive alternation of phrases bounded by non-word characters."""
    alternatives = sorted(
        (r"\s+".join(re.escape(part) for part in phrase.split()) for phrase in phrases),
        key=len,
        reverse=True,
    )
    return re.compile(r"(?<!\w)(?:" + "|".join(alternatives) + r")(?!\w)", re.IGNORECASE)


_QUANTITY_PATTERN = re.compile(
    r"(?:[$€£]\s?)?(?<![\w.])\d+(?:[.,]\d+)*"
    r"(?:\s?(?:%|percent(?!\w)|x(?!\w)|ms(?!\w)|milliseconds|seconds|minutes|hours|days|weeks|"
    r"months|years|k(?!\w)|m(?!\w)|million|billion|users|customers|requests|engineers|people))?"
    r"|(?<!\w)(?:doubled|tripled|quadrupled|halved)(?!\w)",
    re.IGNORECASE,
)

_PHRASE_DETECTORS: dict[str, tuple[re.Pattern[str], str]] = {
    EXAMPLE_GIVEN: (
        _phrase_pattern(
            [
                "for example", "for instance", "such as", "e.g.", "to illustrate",
                "in my previous role", "in my last role", "at my last job", "at my previous job",
                "one time", "there was a time", "in one project", "on one project",
            ]
        ),
        "introduces a concrete example",
    ),
    STRUCTURAL_MARKER: (
        _phrase_pattern(
            [
                "firstly", "secondly", "thirdly", "first of all", "to begin with", "to start with",
                "after that", "next,", "finally", "lastly", "in summary", "to summarize",
                "to summarise", "in conclusion", "to conclude", "on one hand",
                "on the other hand", "step one", "step two", "step three",
            ]
        ),
        "signals an organized, step-by-step answer",
    ),
    CAUSAL_REASONING: (
        _phrase_pattern(
            [
                "because", "therefore", "so that", "due to", "which meant", "this meant",
                "consequently", "hence", "thus", "the reason", "in order to", "since the",
            ]
        ),
        "explains the reasoning behind a choice",
    ),
    OUTCOME_STATEMENT: (
        _phrase_pattern(
            [
                "as a result", "resulted in", "the result was", "the outcome was", "we achieved",
                "i achieved", "which led to", "ended up", "in the end", "reduced", "increased",
                "improved", "saved", "delivered", "shipped",
            ]
        ),
        "states a concrete outcome",
    ),
    OWNERSHIP: (
        _phrase_pattern(
            [
                "i led", "i built", "i designed", "i decided", "i owned", "i implemented",
                "i drove", "i initiated", "i proposed", "i organized", "i was responsible",
                "i took ownership", "i took the lead", "my role was",
            ]
        ),
        "describes personal ownership of the work",
    ),
    SELF_REFLECTION: (
        _phrase_pattern(
            [
                "i learned", "i've learned", "i have learned", "i realized", "i realised",
                "in hindsight", "looking back", "i would do differently", "next time i would",
                "if i did it again", "my mistake", "i could have", "lesson", "taught me",
                "i reflected",
            ]
        ),
        "reflects on what was learned",
    ),
    HEDGING: (
        _phrase_pattern(
            [
                "maybe", "perhaps", "i guess", "i suppose", "not sure", "i'm not sure",
                "i don't know", "kind of", "sort of", "probably",
            ]
        ),
        "hedges instead of committing to a statement",
    ),
    FILLER: (
        _phrase_pattern(["um", "uh", "erm", "you know", "basically", "literally", "i mean"]),
        "filler word that dilutes the answer",
    ),
}


@dataclass
class EvidenceExtractorConfig:
    """Configuration for the rule-based evidence extractor."""

    keyword_min_similarity: float = 88.0
    min_keyword_length: int = 4
    lexicons: dict[str, list[str]] = None  # type: ignore[assignment]
    detectors: list[str] = field(default_factory=lambda: list(DETECTOR_ORDER))

    def __post_init__(self) -> None:
        if self.lexicons is None:
            self.lexicons = {key: list(terms) for key, terms in DEFAULT_LEXICONS.items()}
        unknown = [name for name in self.detectors if name not in DETECTOR_ORDER]
        if unknown:
            raise ValueError(f"Unknown evidence detectors: {unknown}")


class EvidenceExtractor:
    """Scan a response for tagged evidence spans. Pure and deterministic."""

    def __init__(self, *, config: EvidenceExtractorConfig | None = None) -> None:
        self._config = config or EvidenceExtractorConfig()
        self._detectors: dict[str, Callable[[str, Sequence[str]], list[EvidenceSpan]]] = {
            KEYWORD_HIT: self._detect_keywords,
            QUANTIFIED_CLAIM: self._detect_quantities,
        }

    def extract(
        self,
        response_text: str,
        question_type: QuestionType | str,
        *,
        question_text: str | None = None,
    ) -> list[EvidenceSpan]:
        qtype = QuestionType.parse(question_type)
        if not response_text or not response_text.strip():
            return []

        terms = self._keyword_terms(qtype, question_text)
        spans: list[EvidenceSpan] = []
        # run in canonical order regardless of how the config lists them
        for tag in DETECTOR_ORDER:
            if tag not in self._config.detectors:
                continue
            detector = self._detectors.get(tag)
            if detector is not None:
                found = detector(response_text, terms)
            else:
                pattern, rationale = _PHRASE_DETECTORS[tag]
                found = self._match_pattern(response_text, pattern, tag, rationale)
            spans.extend(_drop_self_overlaps(found))

        return sorted(spans, key=lambda span: (span.start, span.end, span.tag))

    def _keyword_terms(self, qtype: QuestionType, question_text: str | None) -> list[str]:
        terms: dict[str, None] = {}
        for term in self._config.lexicons.get(qtype.value, []):
            if term:
                terms.setdefault(term.lower(), None)
        for match in _WORD_PATTERN.finditer(question_text or ""):
            word = match.group(0).lower()
            if len(word) >= self._config.min_keyword_length and word not in _STOPWORDS:
                terms.setdefault(word, None)
        return list(terms)

    def _detect_keywords(self, text: str, terms: Sequence[str]) -> list[EvidenceSpan]:
        if not terms:
            return []
        term_set = set(terms)
        spans: list[EvidenceSpan] = []
        for match in _WORD_PATTERN.finditer(text):
            token = match.group(0).lower()
            if token in _STOPWORDS:
                continue
            if token in term_set:
                matched: str | None = token
            elif len(token) >= self._config.min_keyword_length:
                matched = self._fuzzy_term(token, terms)
            else:
                continue
            if matched is None:
                continue
            spans.append(
                EvidenceSpan(
                    start=match.start(),
                    end=match.end(),
                    tag=KEYWORD_HIT,
                    rationale=f"mentions '{matched}', a term relevant to the question",
                    text=match.group(0),
                )
            )
        return spans

    def _fuzzy_term(self, token: str, terms: Sequence[str]) -> str | None:
        best_term: str | None = None
        best_ratio = 0.0
        for term in terms:
            ratio = fuzz.ratio(token, term)
            if ratio >= self._config.keyword_min_similarity and ratio > best_ratio:
                best_term, best_ratio = term, ratio
        return best_term

    @staticmethod
    def _detect_quantities(text: str, _terms: Sequence[str]) -> list[EvidenceSpan]:
        return EvidenceExtractor._match_pattern(
            text, _QUANTITY_PATTERN, QUANTIFIED_CLAIM, "cites a specific figure"
        )

    @staticmethod
    def _match_pattern(
        text: str,
        pattern: re.Pattern[str],
        tag: str,
        rationale: str,
    ) -> list[EvidenceSpan]:
        spans: list[EvidenceSpan] = []
        for match in pattern.finditer(text):
            start, end = match.span()
            # trailing punctuation such as the comma in "next," is not cited
            while end > start and not text[end - 1].isalnum() and text[end - 1] not in "%.":
                end -= 1
            if end <= start:
                continue
            spans.append(
                EvidenceSpan(start=start, end=end, tag=tag, rationale=rationale, text=text[start:end])
            )
        return spans


def _drop_self_overlaps(spans: Iterable[EvidenceSpan]) -> list[EvidenceSpan]:
    """Keep earliest-then-longest spans so one tag never overlaps itself."""
    kept: list[EvidenceSpan] = []
    for span in sorted(spans, key=lambda item: (item.start, -(item.end - item.start))):
        if kept and span.overlaps(kept[-1]):
            continue
        kept.append(span)
    return kept


__all__ = [
    "EvidenceExtractor",
    "EvidenceExtractorConfig",
    "DETECTOR_ORDER",
    "DEFAULT_LEXICONS",
    "KEYWORD_HIT",
    "QUANTIFIED_CLAIM",
    "EXAMPLE_GIVEN",
    "STRUCTURAL_MARKER",
    "CAUSAL_REASONING",
    "OUTCOME_STATEMENT",
    "OWNERSHIP",
    "SELF_REFLECTION",
    "HEDGING",
    "FILLER",
]
