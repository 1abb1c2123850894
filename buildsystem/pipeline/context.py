"""Execution context shared by every handler of one pipeline run."""

import asyncio
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from ..errors import ArtifactAlreadyPublishedError, MissingConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextKey:
    """Type-safe operation identifier, also the key its artifact lives under."""

    name: str

    def __str__(self) -> str:
        return self.name


# Operation ids of the UX sitemap stages
UX_SITEMAP_DOC = ContextKey("op:UX:SMD")
UX_SITEMAP_STRUCTURE = ContextKey("op:UX:SMS")
UX_SITEMAP_STRUCTURE_LEVEL2 = ContextKey("op:UX:SMS:LEVEL2")

# Global configuration keys
PROJECT_NAME = "projectName"
PLATFORM = "platform"
MODEL = "model"


@dataclass
class CallRecord:
    """Ledger entry for one generation call, keyed by its clock tick."""

    tick: int
    label: str
    operation_id: str
    fingerprint: str
    status: str = "pending"
    response: Optional[str] = None
    error: Optional[str] = None


class ExecutionContext:
    """
    Process-scoped store for one pipeline run.

    Holds global configuration (set before the run, read-only afterwards),
    the write-once artifact store keyed by operation id, and the logical
    clock plus call ledger used by the synchronizer.

    Handlers run as coroutines on one event loop, so reads never race with
    the single writer of each key.
    """

    def __init__(self, global_config: Optional[Dict[str, Any]] = None):
        self._global_config: Dict[str, Any] = dict(global_config or {})
        self._artifacts: Dict[str, Any] = {}
        self._versions: Dict[str, int] = {}
        self._ledger: Dict[int, CallRecord] = {}
        self._replayable: set[int] = set()
        self._clock = 0
        self._frozen = False
        self._published: Dict[str, asyncio.Event] = {}

    # ------------------------------------------------------------------
    # Global configuration
    # ------------------------------------------------------------------

    def set_global_config(self, key: str, value: Any) -> None:
        """Set a global setting. Only allowed before the run starts."""
        if self._frozen:
            raise RuntimeError(
                f"Global config is read-only once the run has started (key={key})"
            )
        self._global_config[key] = value

    def get_global_config(self, key: str) -> Optional[Any]:
        """Get a global setting, or None if absent."""
        return self._global_config.get(key)

    def freeze(self) -> None:
        """Make global configuration read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def get_artifact(self, key: ContextKey) -> Optional[Any]:
        """Get the artifact published under an operation id, or None."""
        return self._artifacts.get(str(key))

    def has_artifact(self, key: ContextKey) -> bool:
        return str(key) in self._artifacts

    def require_artifact(self, key: ContextKey) -> Any:
        """Get an artifact, failing with a configuration error when absent."""
        if str(key) not in self._artifacts:
            raise MissingConfigurationError(f"Missing artifact: {key}")
        return self._artifacts[str(key)]

    async def wait_for_artifact(
        self, key: ContextKey, timeout: Optional[float] = None
    ) -> Any:
        """
        Block until an artifact is published and return it.

        Raises:
            asyncio.TimeoutError: If nothing is published within timeout
        """
        if str(key) in self._artifacts:
            return self._artifacts[str(key)]
        event = self._published.setdefault(str(key), asyncio.Event())
        await asyncio.wait_for(event.wait(), timeout)
        return self._artifacts[str(key)]

    def set_artifact(self, key: ContextKey, value: Any, overwrite: bool = False) -> int:
        """
        Publish an artifact under an operation id.

        Artifacts are write-once. Re-publishing requires overwrite=True and
        bumps the version of the key.

        Returns:
            Version number of the published value (1 for the first write)
        """
        name = str(key)
        if name in self._artifacts and not overwrite:
            raise ArtifactAlreadyPublishedError(
                f"Artifact {name} already published (version {self._versions[name]})"
            )

        self._artifacts[name] = value
        self._versions[name] = self._versions.get(name, 0) + 1
        logger.debug(f"Published {name} (version {self._versions[name]})")

        event = self._published.get(name)
        if event is not None:
            event.set()
        return self._versions[name]

    def artifact_version(self, key: ContextKey) -> int:
        """Number of times an operation id has been published (0 if never)."""
        return self._versions.get(str(key), 0)

    def keys(self) -> list[str]:
        """Get all published operation ids."""
        return list(self._artifacts.keys())

    # ------------------------------------------------------------------
    # Logical clock
    # ------------------------------------------------------------------

    def next_tick(self) -> int:
        """Advance the clock and return the new tick (first tick is 1)."""
        self._clock += 1
        return self._clock

    @property
    def clock(self) -> int:
        """Last tick handed out."""
        return self._clock

    def record_call(self, record: CallRecord) -> None:
        self._ledger[record.tick] = record

    def get_call(self, tick: int) -> Optional[CallRecord]:
        return self._ledger.get(tick)

    def claim_completed_call(
        self, operation_id: str, fingerprint: str
    ) -> Optional[CallRecord]:
        """
        Find a completed call restored from an earlier attempt of this run.

        Only entries loaded by from_dict() are candidates, and each is claimed
        at most once, so N identical requests replay N distinct entries.
        """
        for tick in sorted(self._replayable):
            record = self._ledger[tick]
            if (
                record.status == "completed"
                and record.operation_id == operation_id
                and record.fingerprint == fingerprint
            ):
                self._replayable.discard(tick)
                return record
        return None

    def calls(self) -> list[CallRecord]:
        """Ledger entries in tick order."""
        return [self._ledger[tick] for tick in sorted(self._ledger)]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dict (for checkpointing a run)."""
        return {
            "global_config": self._global_config.copy(),
            "artifacts": self._artifacts.copy(),
            "versions": self._versions.copy(),
            "calls": [asdict(record) for record in self.calls()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionContext":
        """
        Rebuild a context from a checkpoint.

        Artifacts and versions are restored as published. The call ledger is
        restored and the clock resumes after its highest tick, so new calls
        never reuse a tick of the earlier attempt.
        """
        context = cls(global_config=data.get("global_config", {}))
        context._artifacts = dict(data.get("artifacts", {}))
        context._versions = dict(data.get("versions", {}))
        for item in data.get("calls", []):
            context.record_call(CallRecord(**item))
        context._replayable = set(context._ledger)
        context._clock = max(context._ledger, default=0)
        return context
