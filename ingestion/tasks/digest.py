"""Digest pipeline: fetch → classify → rank → summarize → persist."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Callable, List, Optional, Protocol, Sequence
from zoneinfo import ZoneInfo

from celery import shared_task

from ingestion.connectors.news_api import NewsAPIConnector
from ingestion.filters.classifier import classify
from ingestion.filters.rules import FilterRules, load_filter_rules
from ingestion.models.domain import ProcessedArticle, RawArticle, Snapshot
from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger
from publish.snapshot_store import SnapshotStore, archive_date_key
from summarization.models.domain import SummaryOutcome
from summarization.summarizer import Summarizer

REMOVED_SENTINEL = "[Removed]"

logger = get_logger(__name__)


class CandidateSource(Protocol):
    def fetch_candidates(self) -> List[RawArticle]: ...


class ArticleSummarizer(Protocol):
    def summarize(self, article: RawArticle) -> SummaryOutcome: ...


class Pacer:
    """Fixed pause between consecutive steps; the first step runs immediately."""

    def __init__(self, delay_seconds: float, sleep: Callable[[float], None] = time.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._steps = 0

    def wait(self) -> None:
        if self._steps and self.delay_seconds > 0:
            self._sleep(self.delay_seconds)
        self._steps += 1


def rank_articles(articles: Sequence[RawArticle], limit: int) -> List[RawArticle]:
    return sorted(articles, key=lambda a: a.sort_key(), reverse=True)[:limit]


def to_processed(article: RawArticle, summary: SummaryOutcome) -> ProcessedArticle:
    return ProcessedArticle(
        title=article.title,
        title_ja=summary.title_ja,
        original_url=article.url,
        image_url=article.url_to_image,
        published_at=article.published_at,
        source=article.source.name,
        summary_ja=summary.summary_ja,
    )


@dataclass
class DigestPipeline:
    connector: CandidateSource
    rules: FilterRules
    summarizer: ArticleSummarizer
    store: SnapshotStore
    max_articles: int = 20
    delay_seconds: float = 1.0
    tz: tzinfo = field(default_factory=lambda: ZoneInfo("Asia/Tokyo"))
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def select(self, candidates: Sequence[RawArticle]) -> List[RawArticle]:
        live = [a for a in candidates if a.title != REMOVED_SENTINEL]
        relevant: List[RawArticle] = []
        for article in live:
            verdict = classify(article, self.rules)
            if verdict.relevant:
                relevant.append(article)
            else:
                logger.debug(
                    "digest.dropped",
                    extra={"trace_id": self.trace_id, "url": article.url, "reason": verdict.reason, "term": verdict.term},
                )
        logger.info(
            "digest.classified",
            extra={
                "trace_id": self.trace_id,
                "candidates": len(candidates),
                "removed": len(candidates) - len(live),
                "relevant": len(relevant),
            },
        )
        return rank_articles(relevant, self.max_articles)

    def summarize_all(self, articles: Sequence[RawArticle]) -> List[ProcessedArticle]:
        # One outstanding summarizer call at a time, paced by a fixed delay.
        pacer = Pacer(self.delay_seconds, self.sleep)
        processed: List[ProcessedArticle] = []
        fallbacks = 0
        for article in articles:
            pacer.wait()
            summary = self.summarizer.summarize(article)
            fallbacks += int(summary.fallback_used)
            processed.append(to_processed(article, summary))
        logger.info(
            "digest.summarized",
            extra={"trace_id": self.trace_id, "articles": len(processed), "fallbacks": fallbacks},
        )
        return processed

    def run(self) -> Optional[Snapshot]:
        logger.info("digest.start", extra={"trace_id": self.trace_id})
        candidates = self.connector.fetch_candidates()
        if not candidates:
            logger.info("digest.no_candidates", extra={"trace_id": self.trace_id})
            return None

        selected = self.select(candidates)
        if not selected:
            logger.info("digest.no_relevant_articles", extra={"trace_id": self.trace_id})
            return None

        articles = self.summarize_all(selected)
        completed_at = self.clock()
        snapshot = Snapshot(updated_at=completed_at, articles=articles)
        date_key = archive_date_key(completed_at, self.tz)
        self.store.write_latest(snapshot)
        self.store.write_archive(date_key, snapshot)
        logger.info(
            "digest.saved",
            extra={"trace_id": self.trace_id, "articles": len(articles), "archive": date_key},
        )
        return snapshot


def build_pipeline(
    settings: Optional[Settings] = None,
    *,
    connector: Optional[CandidateSource] = None,
    summarizer: Optional[ArticleSummarizer] = None,
    rules: Optional[FilterRules] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DigestPipeline:
    cfg = settings or get_settings()
    if rules is None:
        rules = load_filter_rules(cfg.filter_rules_path).rules
    return DigestPipeline(
        connector=connector or NewsAPIConnector(settings=cfg),
        rules=rules,
        summarizer=summarizer or Summarizer.from_env(),
        store=SnapshotStore(cfg.digest_data_dir, cfg.digest_archive_dir),
        max_articles=int(cfg.digest_max_articles),
        delay_seconds=float(cfg.digest_summary_delay_seconds),
        tz=ZoneInfo(cfg.digest_timezone),
        sleep=sleep,
    )


def digest_core(settings: Optional[Settings] = None, **overrides) -> int:
    """Run one digest and return the number of published articles (0 = no-op)."""
    snapshot = build_pipeline(settings, **overrides).run()
    return len(snapshot.articles) if snapshot is not None else 0


@shared_task(name="ingestion.tasks.digest.build_daily_digest", queue="ingestion.digest")
def build_daily_digest() -> int:  # pragma: no cover - thin wrapper
    return digest_core()
