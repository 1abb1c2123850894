"""UX sitemap pipeline orchestration."""

from typing import Any, Dict, Optional
from datetime import datetime, timezone

from ..handlers.ux import Level2UXSitemapStructureHandler, UXSitemapStructureHandler
from ..loader import BuildConfig
from ..providers.base import BaseLLMProvider
from .clock import ClockedSynchronizer
from .context import (
    UX_SITEMAP_DOC,
    UX_SITEMAP_STRUCTURE,
    UX_SITEMAP_STRUCTURE_LEVEL2,
    ExecutionContext,
)
from .runner import PipelineRunner, RunOutcome


class SitemapStructurePipeline:
    """
    UX sitemap pipeline wiring one provider to the sitemap handlers.

    Pipeline flow:
    1. Sitemap document (op:UX:SMD) is seeded by the caller
    2. UX Sitemap Structure (op:UX:SMS): one page section per page
    3. Level 2 Structure (op:UX:SMS:LEVEL2): every page section expanded in parallel
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        build_config: Optional[BuildConfig] = None,
        synchronizer: Optional[ClockedSynchronizer] = None,
        verbose: bool = True,
    ):
        self.build_config = build_config or BuildConfig()
        self.synchronizer = synchronizer or ClockedSynchronizer(
            provider,
            max_concurrency=self.build_config.max_concurrency,
            timeout=self.build_config.request_timeout,
        )
        self.verbose = verbose

        temperature = self.build_config.get_temperature
        self.runner = PipelineRunner(
            [
                UXSitemapStructureHandler(
                    self.synchronizer,
                    temperature=temperature(str(UX_SITEMAP_STRUCTURE)),
                ),
                Level2UXSitemapStructureHandler(
                    self.synchronizer,
                    temperature=temperature(str(UX_SITEMAP_STRUCTURE_LEVEL2)),
                ),
            ]
        )

    def create_context(self, sitemap_doc: str) -> ExecutionContext:
        context = ExecutionContext(global_config=self.build_config.global_config())
        context.set_artifact(UX_SITEMAP_DOC, sitemap_doc)
        return context

    async def run(
        self, sitemap_doc: str, context: Optional[ExecutionContext] = None
    ) -> Dict[str, Any]:
        """
        Run the pipeline from a sitemap document.

        Args:
            sitemap_doc: Markdown sitemap document
            context: Existing context to resume instead of a fresh one

        Returns:
            Dict with success flag, artifacts, outcome and the context snapshot
        """
        context = context or self.create_context(sitemap_doc)
        started_at = datetime.now(timezone.utc)
        # Ticks restored from a checkpoint belong to the earlier attempt
        first_tick = context.clock

        if self.verbose:
            print("\n" + "=" * 80)
            print("🚀 UX SITEMAP PIPELINE")
            print("=" * 80)
            print(f"\n⏰ Started: {started_at.strftime('%Y-%m-%d %H:%M:%S')} UTC")
            print(f"📁 Project: {self.build_config.project_name}")
            print(f"🤖 Model: {self.build_config.model}")

        outcome = await self.runner.run(context)
        results = self._extract_results(context, outcome, started_at, first_tick)

        if self.verbose:
            self._print_summary(results, outcome)

        return results

    def _extract_results(
        self,
        context: ExecutionContext,
        outcome: RunOutcome,
        started_at: datetime,
        first_tick: int,
    ) -> Dict[str, Any]:
        return {
            "success": outcome.success,
            "started_at": started_at.isoformat(),
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "project_name": self.build_config.project_name,
            "ux_structure": context.get_artifact(UX_SITEMAP_STRUCTURE),
            "ux_structure_level2": context.get_artifact(UX_SITEMAP_STRUCTURE_LEVEL2),
            "generation_calls": context.clock - first_tick,
            "last_tick": context.clock,
            "outcome": outcome.to_dict(),
            "context": context.to_dict(),
        }

    def _print_summary(self, results: Dict[str, Any], outcome: RunOutcome):
        print("\n📊 PIPELINE SUMMARY:")
        print("-" * 60)
        for op_id in outcome.completed:
            print(f"   ✅ {op_id}")
        for op_id in outcome.skipped:
            print(f"   ⏭️  {op_id} (already published)")
        for op_id, error in outcome.failed.items():
            print(f"   ❌ {op_id}: {error}")
        for op_id, missing in outcome.blocked.items():
            print(f"   ⛔ {op_id}: blocked on {', '.join(missing) or 'aborted run'}")
        print(f"\n   Generation calls: {results['generation_calls']}")
        print(f"   Duration: {outcome.duration_seconds:.2f}s")
        print("-" * 60)
