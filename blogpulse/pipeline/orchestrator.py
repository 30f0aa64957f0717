"""Pipeline orchestrator that runs one harvest-and-tag pass."""

import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from psycopg import Connection
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..config import Config, load_sources
from ..db import (
    CompanyStorage,
    PostStorage,
    RunManager,
    SourceManager,
    TrackingManager,
    get_connection,
)
from ..inference import LLMProvider, build_llm_provider
from ..ingestion import ArticleFetcher, DedupGateway, Harvester, RawPost
from ..models import EnrichedPost, Source
from ..notifications import EmailDelivery, NotificationFanout, OperatorAlerter
from ..resolution import CompanyResolver
from .classification import ClassificationPipeline
from .state import PostState, PostWorkItem

console = Console()


class StageFailed(Exception):
    """A stage ended early with a reportable reason."""


class PipelineStage:
    """Represents a pipeline stage."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.success = False
        self.error: Optional[str] = None
        self.stats: Dict = {}

    def start(self):
        """Mark stage as started."""
        self.start_time = time.time()

    def complete(self, stats: Optional[Dict] = None):
        """Mark stage as completed successfully."""
        self.end_time = time.time()
        self.success = True
        if stats:
            self.stats.update(stats)

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.time()
        self.success = False
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0


class PipelineOrchestrator:
    """Harvest sources, keep new posts, classify, persist and notify.

    Collaborators are plain attributes so a caller can swap any of them
    before ``run``. A run that fails without storing a single new post is
    escalated to operators.
    """

    def __init__(self, config: Config, llm: Optional[LLMProvider] = None):
        """Initialize pipeline orchestrator."""
        self.config = config
        settings = config.config

        self.llm = llm or build_llm_provider(config.get_llm_config())
        self.delivery = EmailDelivery.from_config(settings.notifications, config.get_smtp_password())
        self.alerter = OperatorAlerter(self.delivery, settings.notifications.alert_emails)

        self.harvester = Harvester.from_config(settings.harvest, llm=self.llm)
        self.article_fetcher = ArticleFetcher(
            timeout=settings.harvest.timeout,
            max_concurrent=settings.harvest.max_concurrent_pages,
        )
        self.source_manager = SourceManager()
        self.run_manager = RunManager()
        self.post_storage = PostStorage()
        self.company_storage = CompanyStorage()
        self.tracking = TrackingManager()
        self.fanout = NotificationFanout(
            self.tracking,
            delivery=self.delivery,
            app_url=settings.notifications.app_url,
        )

        self.stages = [
            PipelineStage("sources", "Loading and syncing sources"),
            PipelineStage("harvest", "Harvesting sources"),
            PipelineStage("dedup", "Filtering known links"),
            PipelineStage("classify", "Classifying and tagging posts"),
            PipelineStage("persist", "Storing enriched posts"),
            PipelineStage("notify", "Notifying trackers"),
        ]
        self.run_id: Optional[int] = None
        self.total_start_time: Optional[float] = None
        self.stored: List[EnrichedPost] = []
        self._active: List[Source] = []
        self._posts: List[RawPost] = []
        self._new_posts: List[RawPost] = []
        self._items: List[PostWorkItem] = []

    def load_sources(self, conn: Connection) -> List[Source]:
        """Sync sources.yaml into the database and return the enabled ones."""
        sources = load_sources(self.config.sources_path)
        synced = self.source_manager.sync_sources(conn, sources)
        return [s for s in synced if s.enabled]

    def build_pipeline(self, conn: Connection) -> ClassificationPipeline:
        settings = self.config.config
        resolver = CompanyResolver(
            self.company_storage.load_reference(conn),
            min_market_cap=settings.resolver.min_market_cap,
            threshold=settings.resolver.overlap_threshold,
        )
        if not len(resolver):
            console.print("[yellow]Reference company list is empty; run 'blogpulse companies refresh'[/yellow]")
        return ClassificationPipeline(
            self.llm,
            resolver,
            article_fetcher=self.article_fetcher,
            alerter=self.alerter,
            config=settings.pipeline,
        )

    def _print_summary(self, run_date: str):
        """Print pipeline execution summary."""
        successful_stages = sum(1 for s in self.stages if s.success)
        total_duration = time.time() - self.total_start_time if self.total_start_time else 0

        table = Table(title="Pipeline Summary")
        table.add_column("Stage", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Duration", style="yellow")
        table.add_column("Details", style="dim")

        for stage in self.stages:
            status = "[green]✓[/green]" if stage.success else "[red]✗[/red]"
            duration = f"{stage.duration:.1f}s" if stage.duration > 0 else "-"

            details = ""
            if stage.success and stage.stats:
                if stage.name == "sources":
                    details = f"{stage.stats.get('active_sources', 0)} active"
                elif stage.name == "harvest":
                    details = (
                        f"{stage.stats.get('total_posts', 0)} posts, "
                        f"{stage.stats.get('failed_sources', 0)} failed sources"
                    )
                elif stage.name == "dedup":
                    details = f"{stage.stats.get('new', 0)} new, {stage.stats.get('existing', 0)} known"
                elif stage.name == "classify":
                    details = (
                        f"{stage.stats.get('processed', 0)} processed, "
                        f"{stage.stats.get('valid_analysis', 0)} analyses, "
                        f"{stage.stats.get('tokens_used', 0)} tokens"
                    )
                elif stage.name == "persist":
                    details = f"{stage.stats.get('inserted', 0)} stored"
                elif stage.name == "notify":
                    details = f"{stage.stats.get('notifications', 0)} notifications"
            elif not stage.success:
                details = stage.error or "Not run"

            table.add_row(stage.name.title(), status, duration, details)

        console.print("\n")
        console.print(table)

        if successful_stages == len(self.stages):
            console.print(Panel(
                f"[green]✅ Harvest completed[/green]\n\n"
                f"Run date: {run_date}\n"
                f"Duration: {total_duration:.1f} seconds\n"
                f"New posts stored: {len(self.stored)}",
                style="green"
            ))
        else:
            failed_stages = [s.name for s in self.stages if s.start_time and not s.success]
            console.print(Panel(
                f"[red]❌ Harvest failed[/red]\n\n"
                f"Failed stages: {', '.join(failed_stages) or '-'}\n"
                f"Duration: {total_duration:.1f} seconds\n"
                f"New posts stored: {len(self.stored)}",
                style="red"
            ))

    def _stage_stats(self) -> Dict:
        return {
            "total_duration": time.time() - self.total_start_time if self.total_start_time else 0,
            "new_posts": len(self.stored),
            "llm": self.llm.get_usage_stats(),
            "stages": {
                s.name: {"success": s.success, "error": s.error, "stats": s.stats}
                for s in self.stages
            },
        }

    def run(self, run_date: Optional[str] = None) -> bool:
        """
        Run one harvest pass.

        Returns:
            True if every stage completed, False otherwise
        """
        self.total_start_time = time.time()
        run_date = run_date or datetime.now(timezone.utc).date().isoformat()

        console.print(Panel.fit(
            f"📰 Blogpulse harvest\nDate: {run_date}",
            style="bold blue"
        ))

        success = False
        error: Optional[str] = None
        try:
            with get_connection(self.config.get_db_config()) as conn:
                self.run_id = self.run_manager.create_run(conn, run_date)
                success = self.execute(conn)
                self.run_manager.update_run_status(
                    conn,
                    self.run_id,
                    "success" if success else "failed",
                    self._stage_stats(),
                )
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            console.print(f"[red]Database error: {e}[/red]")
        finally:
            self._print_summary(run_date)

        if not success and not self.stored:
            failed = next((s for s in self.stages if s.start_time and not s.success), None)
            self.alerter.catastrophic(
                error or (f"{failed.name}: {failed.error}" if failed else "Harvest failed"),
                {"run_date": run_date, "run_id": self.run_id},
            )
        return success

    def execute(self, conn: Connection) -> bool:
        """Execute the pipeline stages on an open connection."""
        steps = [
            self._sync_sources,
            self._harvest,
            self._dedup,
            self._classify,
            self._persist,
            self._notify,
        ]

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            for stage, step in zip(self.stages, steps):
                task = progress.add_task(stage.description, total=1)
                stage.start()
                try:
                    stage.complete(step(conn))
                    progress.advance(task, 1)
                except Exception as e:
                    stage.fail(str(e))
                    return False
                finally:
                    progress.remove_task(task)

        return all(stage.success for stage in self.stages)

    def _sync_sources(self, conn: Connection) -> Dict:
        self._active = self.load_sources(conn)
        if not self._active:
            raise StageFailed("No enabled sources")
        return {"active_sources": len(self._active)}

    def _harvest(self, conn: Connection) -> Dict:
        harvest = self.harvester.harvest_sync(self._active)
        self.source_manager.mark_checked(conn, [s.id for s in self._active if s.id is not None])
        if len(harvest.failed_sources) == len(self._active):
            raise StageFailed(f"All {len(self._active)} sources failed")

        self._posts = harvest.posts
        return {
            "total_posts": len(self._posts),
            "failed_sources": len(harvest.failed_sources),
            "blocked_sources": sum(1 for r in harvest.results if r.blocked),
        }

    def _dedup(self, conn: Connection) -> Dict:
        dedup = DedupGateway(self.post_storage).filter_new(conn, self._posts)
        self._new_posts = dedup.new_posts
        return dedup.stats()

    def _classify(self, conn: Connection) -> Dict:
        self._items = self.build_pipeline(conn).process_sync(self._new_posts)
        return {
            "processed": len(self._items),
            "skipped_no_body": len(self._new_posts) - len(self._items),
            "degraded": sum(1 for i in self._items if i.errors),
            "valid_analysis": sum(1 for i in self._items if i.enriched and i.enriched.is_valid_analysis),
            "tokens_used": self.llm.get_usage_stats().get("total_tokens", 0),
        }

    def _persist(self, conn: Connection) -> Dict:
        enriched = [i.enriched for i in self._items if i.enriched is not None]
        self.stored = self.post_storage.insert_posts(
            conn,
            enriched,
            batch_size=self.config.config.pipeline.persist_batch_size,
        )
        stored_links = {p.link for p in self.stored}
        for item in self._items:
            if item.raw.link in stored_links:
                item.advance(PostState.PERSISTED)
        return {"inserted": len(self.stored), "conflicts": len(enriched) - len(self.stored)}

    def _notify(self, conn: Connection) -> Dict:
        fanout = self.fanout.fan_out(conn, self.stored)
        deliveries = self.fanout.wait()
        return {
            "notifications": fanout.notifications,
            "emails_sent": sum(1 for d in deliveries if d.success),
            "emails_failed": sum(1 for d in deliveries if not d.success),
        }
