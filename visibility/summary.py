"""
Visibility Summary
==================

Aggregates finished analysis results into the numbers the dashboard and
report show:
- Client mentions per provider and in total
- Provider with the highest client visibility
- Comparative brand mentions (configured and discovered brands)
- Comparative sentiment counts
"""

from dataclasses import dataclass, field
from typing import Optional
import structlog

from .config import AnalysisConfig, Provider
from .models import AnalysisResult, Sentiment

logger = structlog.get_logger(__name__)


@dataclass
class BrandMentionRow:
    """Mentions of one brand across providers"""
    brand_name: str
    mentions: dict[Provider, int] = field(default_factory=dict)
    is_client: bool = False
    is_discovered: bool = False

    @property
    def total(self) -> int:
        return sum(self.mentions.values())

    def to_dict(self) -> dict:
        return {
            "brandName": self.brand_name,
            "mentions": {p.value: count for p, count in self.mentions.items()},
            "total": self.total,
            "isClient": self.is_client,
            "isDiscovered": self.is_discovered,
        }


@dataclass
class SentimentCounts:
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    def add(self, sentiment: Sentiment):
        if sentiment is Sentiment.POSITIVE:
            self.positive += 1
        elif sentiment is Sentiment.NEUTRAL:
            self.neutral += 1
        elif sentiment is Sentiment.NEGATIVE:
            self.negative += 1

    def to_dict(self) -> dict:
        return {"positive": self.positive, "neutral": self.neutral, "negative": self.negative}


def client_mentions_by_provider(
    results: list[AnalysisResult],
    config: AnalysisConfig
) -> dict[Provider, int]:
    """Sum client brand mentions per selected provider"""
    client = config.client_name.lower()
    counts = {provider: 0 for provider in config.providers}

    for result in results:
        for p_response in result.provider_responses:
            for analysis in p_response.brand_analyses:
                if analysis.brand_name.lower() == client:
                    counts[p_response.provider] = counts.get(p_response.provider, 0) + analysis.mentions

    return counts


def get_visibility_summary(results: list[AnalysisResult], config: AnalysisConfig) -> dict:
    """
    Generate a visibility summary from analysis results.

    Returns metrics like:
    - Total client mentions across all providers
    - Client mentions per provider
    - Provider where the client is most visible
    - Number of failed provider responses
    """
    by_provider = client_mentions_by_provider(results, config)

    top_provider: Optional[Provider] = None
    top_mentions = -1
    for provider in config.providers:
        if by_provider[provider] > top_mentions:
            top_mentions = by_provider[provider]
            top_provider = provider

    failed = sum(
        1
        for result in results
        for p_response in result.provider_responses
        if not p_response.succeeded
    )

    return {
        "client_name": config.client_name,
        "prompts_analyzed": len(results),
        "provider_count": len(config.providers),
        "total_client_mentions": sum(by_provider.values()),
        "mentions_by_provider": {p.value: count for p, count in by_provider.items()},
        "top_provider": top_provider.value if top_provider else None,
        "top_provider_mentions": top_mentions if top_provider else 0,
        "failed_responses": failed,
    }


def build_brand_mentions(
    results: list[AnalysisResult],
    config: AnalysisConfig
) -> list[BrandMentionRow]:
    """
    Build the comparative brand mentions table.

    Brand names are merged case-insensitively (first spelling seen wins).
    Every configured brand gets a row even with no mentions; brands outside
    the configured list are flagged as discovered. Sorted by total mentions,
    highest first.
    """
    known = {brand.lower() for brand in config.all_brands}
    client = config.client_name.lower()
    rows: dict[str, BrandMentionRow] = {}

    def row_for(brand_name: str) -> BrandMentionRow:
        key = brand_name.lower()
        if key not in rows:
            rows[key] = BrandMentionRow(
                brand_name=brand_name,
                is_client=key == client,
                is_discovered=key not in known,
            )
        return rows[key]

    for result in results:
        for p_response in result.provider_responses:
            for analysis in p_response.brand_analyses:
                row = row_for(analysis.brand_name)
                row.mentions[p_response.provider] = (
                    row.mentions.get(p_response.provider, 0) + analysis.mentions
                )

    for brand in config.all_brands:
        row_for(brand)

    return sorted(rows.values(), key=lambda r: r.total, reverse=True)


def build_sentiment_scores(
    results: list[AnalysisResult],
    config: AnalysisConfig
) -> dict[str, dict[Provider, SentimentCounts]]:
    """
    Count Positive/Neutral/Negative analyses per brand and provider.

    Keys are lower-cased brand names; 'Not Mentioned' entries are ignored.
    Every configured brand is present, possibly with no providers.
    """
    scores: dict[str, dict[Provider, SentimentCounts]] = {
        brand.lower(): {} for brand in config.all_brands
    }

    for result in results:
        for p_response in result.provider_responses:
            for analysis in p_response.brand_analyses:
                by_provider = scores.setdefault(analysis.brand_name.lower(), {})
                if analysis.sentiment is Sentiment.NOT_MENTIONED:
                    continue
                by_provider.setdefault(p_response.provider, SentimentCounts()).add(analysis.sentiment)

    return scores


def collect_answers(
    results: list[AnalysisResult],
    question: str
) -> list[dict[Provider, Optional[str]]]:
    """Answers to one auxiliary question, per prompt and provider (None where missing)"""
    collected = []
    for result in results:
        answers = {}
        for p_response in result.provider_responses:
            match = next(
                (a for a in p_response.additional_answers if a.question == question),
                None,
            )
            answers[p_response.provider] = match.answer if match else None
        collected.append(answers)
    return collected
