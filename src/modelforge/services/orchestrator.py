"""Sequences one classify-then-generate round for a single chat message.

``start -> sanitized -> decided -> (no_code_needed | generating) -> (done | failed)``

Each call to :meth:`Orchestrator.run` walks the machine exactly once. Failures
are re-raised unchanged after the run is marked failed; nothing is written to
the artifact store unless generation succeeded.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from threading import Lock
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..domain.models import (
    ConversationTurn,
    GeneratedFile,
    NeedsCodeDecision,
    OrchestrationOutcome,
)
from ..infrastructure.artifact_store import ArtifactStore
from ..observability.metrics import ORCHESTRATION_RUNS
from .decision import DecisionStage
from .generation import GenerationStage
from .sanitizer import sanitize_messages


LOG = logging.getLogger("modelforge.orchestrator")


class RunState(str, Enum):
    START = "start"
    SANITIZED = "sanitized"
    DECIDED = "decided"
    NO_CODE_NEEDED = "no_code_needed"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


class ArtifactLocks:
    """One lock per (project, path) so concurrent edits of a file queue up.

    An entry lives only while some run holds or waits on it, so the registry
    never grows past the number of artifacts being edited right now.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: Dict[Tuple[str, str], List] = {}

    def active(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, project_id: str, path: str) -> Iterator[None]:
        key = (project_id, path)
        with self._guard:
            entry = self._locks.setdefault(key, [Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


def _prompt_from(turns: Sequence[ConversationTurn]) -> str:
    for turn in reversed(turns):
        if turn.role == "user":
            return turn.content
    return turns[-1].content


class Orchestrator:
    def __init__(
        self,
        store: ArtifactStore,
        decision_stage: DecisionStage,
        generation_stage: GenerationStage,
        locks: Optional[ArtifactLocks] = None,
    ) -> None:
        self._store = store
        self._decision = decision_stage
        self._generation = generation_stage
        self._locks = locks or ArtifactLocks()

    def run(
        self,
        business_case: str,
        turns: Sequence[ConversationTurn],
        project_id: str,
        path: str,
    ) -> OrchestrationOutcome:
        if not turns:
            raise ValueError("at least one conversation turn is required")
        with self._locks.hold(project_id, path):
            self._transition(RunState.START, project_id, path)
            try:
                outcome = self._run(business_case, turns, project_id, path)
            except Exception:
                self._transition(RunState.FAILED, project_id, path)
                ORCHESTRATION_RUNS.labels(outcome="failed").inc()
                raise
        return outcome

    def _transition(self, state: RunState, project_id: str, path: str) -> None:
        LOG.debug("orchestration_state state=%s project_id=%s path=%s", state.value, project_id, path)

    def _run(
        self,
        business_case: str,
        turns: Sequence[ConversationTurn],
        project_id: str,
        path: str,
    ) -> OrchestrationOutcome:
        sanitized = sanitize_messages(turns)
        self._transition(RunState.SANITIZED, project_id, path)

        current = self._store.latest_content(project_id, path) or ""
        decision = self._decision.decide(business_case, current, sanitized)
        self._transition(RunState.DECIDED, project_id, path)

        if not isinstance(decision, NeedsCodeDecision):
            self._transition(RunState.NO_CODE_NEEDED, project_id, path)
            self._transition(RunState.DONE, project_id, path)
            ORCHESTRATION_RUNS.labels(outcome="no_code").inc()
            return OrchestrationOutcome(display_message=decision.user_response)

        self._transition(RunState.GENERATING, project_id, path)
        code = self._generation.generate(decision.code_instructions, current, path)
        version_id = self._store.record_version(
            project_id,
            path,
            code,
            prompt=_prompt_from(turns),
            decision_message=decision.user_response,
        )
        LOG.info("artifact_version_recorded", extra={"project_id": project_id, "path": path, "version_id": version_id})
        self._transition(RunState.DONE, project_id, path)
        ORCHESTRATION_RUNS.labels(outcome="generated").inc()
        return OrchestrationOutcome(
            display_message=decision.user_response,
            touched_files=[path],
            generated_files=[GeneratedFile(path=path, content=code)],
        )
