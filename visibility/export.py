"""JSON export of finished analysis runs."""

import json
import re
from pathlib import Path
from typing import Union
import structlog

from .config import AnalysisConfig
from .models import AnalysisResult
from .summary import (
    build_brand_mentions,
    build_sentiment_scores,
    collect_answers,
    get_visibility_summary,
)

logger = structlog.get_logger(__name__)


def report_filename(client_name: str, suffix: str = "json") -> str:
    safe_name = re.sub(r"[^a-z0-9]", "_", client_name, flags=re.IGNORECASE).lower()
    return f"{safe_name}_llm_visibility_report.{suffix}"


def question_answers_to_dict(results: list[AnalysisResult], config: AnalysisConfig) -> list[dict]:
    """Answers to each auxiliary question, grouped by prompt and provider"""
    sections = []
    for question in config.additional_questions:
        per_prompt = collect_answers(results, question)
        sections.append({
            "question": question,
            "answers": [
                {
                    "prompt": result.prompt,
                    "answers": {p.value: answer for p, answer in answers.items()},
                }
                for result, answers in zip(results, per_prompt)
            ],
        })
    return sections


def results_to_dict(results: list[AnalysisResult], config: AnalysisConfig) -> dict:
    sentiment_scores = build_sentiment_scores(results, config)
    return {
        "clientName": config.client_name,
        "competitors": list(config.competitors),
        "providers": [p.value for p in config.providers],
        "models": {p.value: config.models.get(p) for p in config.providers},
        "additionalQuestions": list(config.additional_questions),
        "summary": get_visibility_summary(results, config),
        "brandMentions": [row.to_dict() for row in build_brand_mentions(results, config)],
        "sentimentScores": {
            brand: {p.value: counts.to_dict() for p, counts in by_provider.items()}
            for brand, by_provider in sentiment_scores.items()
        },
        "additionalQuestionAnswers": question_answers_to_dict(results, config),
        "results": [result.to_dict() for result in results],
    }


def export_json(
    results: list[AnalysisResult],
    config: AnalysisConfig,
    path: Union[str, Path],
) -> Path:
    """Write the results document to `path` and return the path."""
    path = Path(path)
    path.write_text(
        json.dumps(results_to_dict(results, config), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info("results_exported", path=str(path), prompts=len(results))
    return path
