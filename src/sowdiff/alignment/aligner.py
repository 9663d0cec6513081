"""
Section aligner.

Computes a partial injective matching of draft sections onto template
sections. Each draft section, in document order, is scored against every
template section not yet claimed; the best candidate is claimed if its score
reaches the strategy's floor. This is a single greedy pass: an earlier draft
section can take a template section that a later one would have matched
better, and that later section then falls back or stays unmatched.
"""

from dataclasses import dataclass
from typing import Callable, Sequence

import structlog

from sowdiff.alignment.similarity import token_set_similarity
from sowdiff.models.analysis import AlignmentEdge, AlignmentResult, MatchStrategy
from sowdiff.models.document import Section

logger = structlog.get_logger(__name__)

NUMBER_EXACT_BONUS = 100
NUMBER_PREFIX_BONUS = 50
TITLE_SIMILARITY_WEIGHT = 0.8
TITLE_EXACT_BONUS = 80
TITLE_CONTAINS_BONUS = 40
BODY_PREVIEW_CHARS = 500
BODY_SIMILARITY_WEIGHT = 0.2
LEVEL_BONUS = 10


def similar_titles(template_title: str, draft_title: str) -> float:
    return token_set_similarity(template_title, draft_title) * TITLE_SIMILARITY_WEIGHT


def tiered_titles(template_title: str, draft_title: str) -> float:
    """Flat bonus for an exact (case-insensitive) title, smaller for containment."""
    t1, t2 = template_title.lower(), draft_title.lower()
    if t1 == t2:
        return TITLE_EXACT_BONUS
    if t1 in t2 or t2 in t1:
        return TITLE_CONTAINS_BONUS
    return 0


@dataclass(frozen=True)
class AlignerConfig:
    """A named scoring variant: title scorer plus acceptance floor."""
    strategy: MatchStrategy
    floor: float
    title_score: Callable[[str, str], float]


LENIENT = AlignerConfig(MatchStrategy.LENIENT, floor=30, title_score=similar_titles)
STRICT = AlignerConfig(MatchStrategy.STRICT, floor=40, title_score=tiered_titles)

STRATEGIES = {config.strategy: config for config in (LENIENT, STRICT)}


class SectionAligner:
    """Greedy first-claim section aligner. Pure and deterministic."""

    def __init__(self, config: AlignerConfig = LENIENT):
        self.config = config

    @classmethod
    def for_strategy(cls, strategy: MatchStrategy | str) -> "SectionAligner":
        return cls(STRATEGIES[MatchStrategy(strategy)])

    def score(self, template: Section, draft: Section) -> dict[str, float]:
        """Per-signal scores of one candidate pair; only contributing signals appear."""
        signals: dict[str, float] = {}

        if template.number and draft.number:
            if template.number == draft.number:
                signals["number_exact"] = NUMBER_EXACT_BONUS
            elif draft.number.startswith(template.number) or template.number.startswith(draft.number):
                signals["number_prefix"] = NUMBER_PREFIX_BONUS

        if template.title and draft.title:
            title = self.config.title_score(template.title, draft.title)
            if title:
                signals["title"] = title

        # Two header-only sections share no body evidence.
        if template.body.strip() or draft.body.strip():
            body = token_set_similarity(
                template.body[:BODY_PREVIEW_CHARS], draft.body[:BODY_PREVIEW_CHARS]
            ) * BODY_SIMILARITY_WEIGHT
            if body:
                signals["body"] = body

        if template.level == draft.level:
            signals["level"] = LEVEL_BONUS

        return signals

    def align(
        self,
        template_sections: Sequence[Section],
        draft_sections: Sequence[Section],
    ) -> AlignmentResult:
        claimed: set[str] = set()
        edges: list[AlignmentEdge] = []

        for draft in draft_sections:
            best: Section | None = None
            best_score = 0.0
            best_signals: dict[str, float] = {}

            for template in template_sections:
                if template.id in claimed:
                    continue
                signals = self.score(template, draft)
                total = sum(signals.values())
                # Strictly greater: ties keep the first candidate seen.
                if total > best_score:
                    best, best_score, best_signals = template, total, signals

            if best is not None and best_score >= self.config.floor:
                claimed.add(best.id)
                edges.append(
                    AlignmentEdge(
                        draft_section_id=draft.id,
                        template_section_id=best.id,
                        score=best_score,
                        signals=best_signals,
                    )
                )
            else:
                edges.append(
                    AlignmentEdge(
                        draft_section_id=draft.id,
                        score=best_score,
                        signals=best_signals,
                    )
                )

        result = AlignmentResult(
            strategy=self.config.strategy,
            floor=self.config.floor,
            edges=edges,
            unclaimed_template_ids=[s.id for s in template_sections if s.id not in claimed],
        )
        logger.debug(
            "sections_aligned",
            strategy=self.config.strategy.value,
            draft_sections=len(draft_sections),
            template_sections=len(template_sections),
            matched=result.matched_count,
        )
        return result


def align_sections(
    template_sections: Sequence[Section],
    draft_sections: Sequence[Section],
    strategy: MatchStrategy | str = MatchStrategy.LENIENT,
) -> dict[str, str | None]:
    """Map each draft section id to its template section id, or None."""
    return SectionAligner.for_strategy(strategy).align(template_sections, draft_sections).mapping
