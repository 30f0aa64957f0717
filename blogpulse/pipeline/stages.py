"""Inference stages of the classification pipeline."""

import json
from typing import Dict, List, Optional

from ..inference import (
    ClassificationOutput,
    CompanyMention,
    LLMProvider,
    StageOutcome,
    SummaryOutput,
    ValidationVerdict,
    parse_model,
    parse_model_list,
    run_stage,
)
from ..inference.prompts import (
    CLASSIFY_PROMPT,
    CLASSIFY_SYSTEM,
    EXTRACT_PROMPT,
    EXTRACT_RULES,
    EXTRACT_SYSTEM,
    SUMMARIZE_PROMPT,
    SUMMARIZE_SYSTEM,
    VALIDATE_PROMPT,
    VALIDATE_SYSTEM,
)
from ..models import Classification, CompanyMatch, Sentiment
from ..resolution import Resolution, normalize_name

FALLBACK_SUMMARY_WORDS = 60


def fallback_summary(title: str, body: str, summary: str = "") -> str:
    """Summary used when the summarize stage fails."""
    if summary.strip():
        return summary.strip()
    words = body.split()
    if words:
        text = " ".join(words[:FALLBACK_SUMMARY_WORDS])
        return text + ("..." if len(words) > FALLBACK_SUMMARY_WORDS else "")
    return title


class Classifier:
    """Classify a post and list the companies in its main narrative.

    A single-company deep dive must exceed ``min_words``; shorter posts
    labelled that way are downgraded to Other.
    """

    def __init__(
        self,
        llm: LLMProvider,
        min_words: int = 500,
        words_per_company: int = 200,
        content_limit: int = 10000,
    ) -> None:
        self.llm = llm
        self.min_words = min_words
        self.words_per_company = words_per_company
        self.content_limit = content_limit

    def enforce_word_floor(self, output: ClassificationOutput, word_count: int) -> ClassificationOutput:
        if output.classification == Classification.COMPANY_ANALYSIS and word_count <= self.min_words:
            return output.model_copy(update={"classification": Classification.OTHER})
        return output

    def classify(self, title: str, body: str) -> StageOutcome[ClassificationOutput]:
        word_count = len(body.split())

        def call() -> ClassificationOutput:
            prompt = CLASSIFY_PROMPT.format(
                min_words=self.min_words,
                words_per_company=self.words_per_company,
                title=title,
                word_count=word_count,
                content=body[: self.content_limit],
            )
            output = parse_model(self.llm.complete(prompt, system=CLASSIFY_SYSTEM), ClassificationOutput)
            return self.enforce_word_floor(output, word_count)

        return run_stage("classify", call, ClassificationOutput)


class CompanyExtractor:
    """Re-derive the company list under classification-specific rules."""

    def __init__(self, llm: LLMProvider) -> None:
        self.llm = llm

    def extract(
        self,
        title: str,
        body: str,
        classification: Classification,
        candidates: List[str],
    ) -> StageOutcome[List[str]]:
        if classification == Classification.OTHER:
            return StageOutcome([])

        def call() -> List[str]:
            prompt = EXTRACT_PROMPT.format(
                classification=classification.value,
                rules=EXTRACT_RULES.get(classification.value, EXTRACT_RULES["default"]),
                candidates=", ".join(candidates) if candidates else "none",
                title=title,
                content=body,
            )
            mentions = parse_model_list(
                self.llm.complete(prompt, system=EXTRACT_SYSTEM), CompanyMention
            )
            names = []
            for mention in mentions:
                name = mention.company.strip()
                if name and name.lower() not in {n.lower() for n in names}:
                    names.append(name)
            return names

        return run_stage("extract", call, lambda: list(candidates))


class CompanyValidator:
    """Check resolved companies against the article in one inference call.

    Verdicts are paired with candidates by listed name, then by extracted
    name, then by position when the reply has one verdict per candidate.
    """

    def __init__(self, llm: LLMProvider) -> None:
        self.llm = llm

    def _pair(
        self,
        resolutions: List[Resolution],
        verdicts: List[ValidationVerdict],
    ) -> List[Optional[ValidationVerdict]]:
        by_name: Dict[str, ValidationVerdict] = {}
        for verdict in verdicts:
            if verdict.company:
                by_name.setdefault(normalize_name(verdict.company), verdict)

        paired: List[Optional[ValidationVerdict]] = []
        for index, resolution in enumerate(resolutions):
            verdict = by_name.get(normalize_name(resolution.reference.name)) or by_name.get(
                normalize_name(resolution.extracted_name)
            )
            if verdict is None and len(verdicts) == len(resolutions):
                verdict = verdicts[index]
            paired.append(verdict)
        return paired

    def validate(self, title: str, body: str, resolutions: List[Resolution]) -> StageOutcome[List[CompanyMatch]]:
        if not resolutions:
            return StageOutcome([])

        def call() -> List[CompanyMatch]:
            candidates = json.dumps(
                [
                    {
                        "company": r.reference.name,
                        "mentionedAs": r.extracted_name,
                        "nseCode": r.reference.nse_code,
                    }
                    for r in resolutions
                ],
                indent=1,
            )
            prompt = VALIDATE_PROMPT.format(candidates=candidates, title=title, content=body)
            verdicts = parse_model_list(
                self.llm.complete(prompt, system=VALIDATE_SYSTEM), ValidationVerdict
            )
            return [
                resolution.to_match()
                for resolution, verdict in zip(resolutions, self._pair(resolutions, verdicts))
                if verdict is not None and verdict.is_match
            ]

        return run_stage("validate", call, list)


class Summarizer:
    """Thesis-first summary with a single sentiment tag."""

    def __init__(self, llm: LLMProvider) -> None:
        self.llm = llm

    def summarize(self, title: str, body: str, classify_summary: str = "") -> StageOutcome[SummaryOutput]:
        def call() -> SummaryOutput:
            prompt = SUMMARIZE_PROMPT.format(title=title, content=body)
            return parse_model(self.llm.complete(prompt, system=SUMMARIZE_SYSTEM), SummaryOutput)

        def default() -> SummaryOutput:
            return SummaryOutput(
                summary=fallback_summary(title, body, classify_summary) or "-",
                sentiment=Sentiment.NEUTRAL,
            )

        return run_stage("summarize", call, default)
