"""Tests for the execution context (buildsystem/pipeline/context.py).

This module tests:
- Write-once artifacts and explicit overwrite versioning
- Read-only global configuration once a run starts
- Waiting for artifacts published by other handlers
- The logical clock and call ledger
- Checkpoint serialization and replay claims
"""

import asyncio
import json

import pytest

from buildsystem.errors import ArtifactAlreadyPublishedError, MissingConfigurationError
from buildsystem.pipeline.context import (
    PROJECT_NAME,
    UX_SITEMAP_DOC,
    UX_SITEMAP_STRUCTURE,
    CallRecord,
    ContextKey,
    ExecutionContext,
)


class TestArtifacts:
    """Test suite for the write-once artifact store."""

    def test_get_absent_artifact(self, context):
        assert context.get_artifact(UX_SITEMAP_DOC) is None
        assert not context.has_artifact(UX_SITEMAP_DOC)

    def test_set_and_get(self, context):
        version = context.set_artifact(UX_SITEMAP_DOC, "sitemap")

        assert version == 1
        assert context.get_artifact(UX_SITEMAP_DOC) == "sitemap"
        assert context.has_artifact(UX_SITEMAP_DOC)
        assert context.keys() == ["op:UX:SMD"]

    def test_string_and_key_address_same_artifact(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "sitemap")

        assert context.get_artifact(ContextKey("op:UX:SMD")) == "sitemap"

    def test_second_write_rejected(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "first")

        with pytest.raises(ArtifactAlreadyPublishedError) as exc_info:
            context.set_artifact(UX_SITEMAP_DOC, "second")

        assert exc_info.value.kind == "context"
        assert context.get_artifact(UX_SITEMAP_DOC) == "first"
        assert context.artifact_version(UX_SITEMAP_DOC) == 1

    def test_explicit_overwrite_bumps_version(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "first")
        version = context.set_artifact(UX_SITEMAP_DOC, "second", overwrite=True)

        assert version == 2
        assert context.get_artifact(UX_SITEMAP_DOC) == "second"
        assert context.artifact_version(UX_SITEMAP_DOC) == 2

    def test_unpublished_version_is_zero(self, context):
        assert context.artifact_version(UX_SITEMAP_STRUCTURE) == 0

    def test_require_artifact(self, context):
        with pytest.raises(MissingConfigurationError):
            context.require_artifact(UX_SITEMAP_DOC)

        context.set_artifact(UX_SITEMAP_DOC, "sitemap")
        assert context.require_artifact(UX_SITEMAP_DOC) == "sitemap"

    @pytest.mark.asyncio
    async def test_wait_for_artifact_published_later(self, context):
        async def publish():
            await asyncio.sleep(0.01)
            context.set_artifact(UX_SITEMAP_STRUCTURE, "structure")

        waiter = asyncio.ensure_future(
            context.wait_for_artifact(UX_SITEMAP_STRUCTURE, timeout=1.0)
        )
        await publish()

        assert await waiter == "structure"

    @pytest.mark.asyncio
    async def test_wait_for_artifact_already_published(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "sitemap")

        assert await context.wait_for_artifact(UX_SITEMAP_DOC) == "sitemap"

    @pytest.mark.asyncio
    async def test_wait_for_artifact_timeout(self, context):
        with pytest.raises(asyncio.TimeoutError):
            await context.wait_for_artifact(UX_SITEMAP_DOC, timeout=0.01)


class TestGlobalConfig:
    """Global configuration is writable only before the run starts."""

    def test_get_and_set(self):
        context = ExecutionContext()
        context.set_global_config(PROJECT_NAME, "Portfolio")

        assert context.get_global_config(PROJECT_NAME) == "Portfolio"
        assert context.get_global_config("missing") is None

    def test_frozen_after_freeze(self, context):
        context.freeze()

        assert context.frozen
        with pytest.raises(RuntimeError):
            context.set_global_config(PROJECT_NAME, "Changed")
        assert context.get_global_config(PROJECT_NAME) == "Test Project"

    def test_constructor_copies_mapping(self):
        settings = {PROJECT_NAME: "Portfolio"}
        context = ExecutionContext(global_config=settings)
        settings[PROJECT_NAME] = "Changed"

        assert context.get_global_config(PROJECT_NAME) == "Portfolio"


class TestClockAndLedger:

    def test_ticks_start_at_one(self, context):
        assert context.clock == 0
        assert context.next_tick() == 1
        assert context.next_tick() == 2
        assert context.clock == 2

    def test_calls_in_tick_order(self, context):
        for tick in (2, 1, 3):
            context.record_call(CallRecord(tick, "label", "op:A", f"fp{tick}"))

        assert [record.tick for record in context.calls()] == [1, 2, 3]
        assert context.get_call(2).fingerprint == "fp2"
        assert context.get_call(9) is None

    def test_fresh_context_replays_nothing(self, context):
        record = CallRecord(1, "label", "op:A", "fp", status="completed", response="x")
        context.record_call(record)

        assert context.claim_completed_call("op:A", "fp") is None


class TestSerialization:
    """Checkpoint round trips through JSON."""

    def _checkpoint(self, context) -> ExecutionContext:
        return ExecutionContext.from_dict(json.loads(json.dumps(context.to_dict())))

    def test_to_dict(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "sitemap")
        context.record_call(CallRecord(context.next_tick(), "label", "op:A", "fp"))

        data = context.to_dict()

        assert data["global_config"][PROJECT_NAME] == "Test Project"
        assert data["artifacts"] == {"op:UX:SMD": "sitemap"}
        assert data["versions"] == {"op:UX:SMD": 1}
        assert data["calls"][0]["tick"] == 1
        assert data["calls"][0]["status"] == "pending"

    def test_round_trip_restores_state(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "sitemap")
        context.set_artifact(UX_SITEMAP_DOC, "sitemap v2", overwrite=True)
        for _ in range(3):
            tick = context.next_tick()
            context.record_call(CallRecord(tick, "label", "op:A", f"fp{tick}"))

        restored = self._checkpoint(context)

        assert restored.get_artifact(UX_SITEMAP_DOC) == "sitemap v2"
        assert restored.artifact_version(UX_SITEMAP_DOC) == 2
        assert restored.get_global_config(PROJECT_NAME) == "Test Project"
        assert not restored.frozen
        assert restored.clock == 3
        assert restored.next_tick() == 4

    def test_restored_published_artifact_is_still_write_once(self, context):
        context.set_artifact(UX_SITEMAP_DOC, "sitemap")

        restored = self._checkpoint(context)

        with pytest.raises(ArtifactAlreadyPublishedError):
            restored.set_artifact(UX_SITEMAP_DOC, "again")

    def test_completed_restored_call_claimed_once(self, context):
        context.record_call(
            CallRecord(1, "label", "op:A", "fp", status="completed", response="x")
        )
        context.record_call(
            CallRecord(2, "label", "op:A", "fp", status="completed", response="y")
        )
        context.record_call(CallRecord(3, "label", "op:A", "fp", status="failed"))

        restored = self._checkpoint(context)

        assert restored.claim_completed_call("op:A", "fp").response == "x"
        assert restored.claim_completed_call("op:A", "fp").response == "y"
        assert restored.claim_completed_call("op:A", "fp") is None

    def test_claim_matches_operation_and_fingerprint(self, context):
        context.record_call(
            CallRecord(1, "label", "op:A", "fp", status="completed", response="x")
        )

        restored = self._checkpoint(context)

        assert restored.claim_completed_call("op:B", "fp") is None
        assert restored.claim_completed_call("op:A", "other") is None
        assert restored.claim_completed_call("op:A", "fp").tick == 1

    def test_empty_checkpoint(self):
        restored = ExecutionContext.from_dict({})

        assert restored.clock == 0
        assert restored.keys() == []
        assert restored.calls() == []
