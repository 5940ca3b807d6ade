"""Five-stage pipeline that chains remote agent jobs for one uploaded slate.

Ingest -> Signals (optional) -> Projections (fan-out, one job per model) ->
Consensus -> Optimizer. Each stage's output is threaded into the next stage's
payload; only Ingest has a recovery path (the local CSV parser).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Sequence

from dfsrelay.config import RelaySettings
from dfsrelay.errors import IngestionExhaustedError, RemoteError, RemoteExecutionError
from dfsrelay.ingest import parse_csv
from dfsrelay.models import ModelDescriptor, PipelineOptions, Slate, base_payload
from dfsrelay.remote import JobClient, TerminalPolicy, execution_status, wait_for_execution


logger = logging.getLogger(__name__)

INGEST = "ingest"
SIGNALS = "signals"
PROJECTIONS = "projections"
CONSENSUS = "consensus"
OPTIMIZER = "optimizer"

CONSENSUS_METHOD = "avg"


@dataclass
class PipelineTrace:
    """Execution handles collected as each stage starts, for debug output."""

    ingest_exec: Optional[str] = None
    signals_exec: Optional[str] = None
    proj_execs: List[Optional[str]] = field(default_factory=list)
    cons_exec: Optional[str] = None
    opt_exec: Optional[str] = None
    ingest_source: Optional[str] = None
    player_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PipelineResult:
    lineups: Any
    trace: PipelineTrace


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def extract_players(record: Mapping[str, Any]) -> List[Any]:
    result = _as_dict(record.get("result"))
    candidates = (
        result.get("players"),
        _as_dict(result.get("output")).get("players"),
        _as_dict(result.get("data")).get("players"),
        record.get("players"),
    )
    for players in candidates:
        if isinstance(players, list) and players:
            return players
    return []


def reported_error(record: Mapping[str, Any]) -> Optional[Any]:
    return record.get("error") or _as_dict(record.get("result")).get("error")


def _first_present(*values: Any) -> Any:
    return next((value for value in values if value is not None), None)


def normalize_projection_set(record: Mapping[str, Any]) -> Any:
    result = record.get("result")
    data = _first_present(_as_dict(result).get("output"), result, record.get("data"), record)
    if isinstance(data, dict) and isinstance(data.get("players"), list):
        return {"players": data["players"]}
    return data


def extract_consensus(record: Mapping[str, Any]) -> Any:
    result = record.get("result")
    return _first_present(_as_dict(result).get("consensus"), result, record)


def extract_lineups(record: Mapping[str, Any]) -> Any:
    return _first_present(_as_dict(record.get("result")).get("lineups"), record.get("lineups"))


async def _gather_all(aws: Sequence[Awaitable[Any]]) -> List[Any]:
    """Run awaitables concurrently; the first failure cancels the rest and propagates."""

    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class PipelineOrchestrator:
    def __init__(
        self,
        client: JobClient,
        settings: RelaySettings,
        *,
        options: PipelineOptions | None = None,
        policy: TerminalPolicy | None = None,
    ):
        self.client = client
        self.settings = settings
        self.options = options or PipelineOptions()
        self.policy = policy or TerminalPolicy.from_settings(settings)

    @property
    def projection_models(self) -> Sequence[ModelDescriptor]:
        return self.settings.projection_models

    async def _create(self, label: str, agent_id: str, payload: Dict[str, Any]) -> str:
        try:
            job = await self.client.create_job(agent_id, payload)
        except RemoteError as exc:
            raise exc.with_stage(label)
        return job.execution_handle

    async def _wait(self, label: str, handle: str) -> Dict[str, Any]:
        return await wait_for_execution(
            self.client,
            handle,
            label=label,
            timeout=self.settings.poll_timeout,
            interval=self.settings.poll_interval,
            policy=self.policy,
        )

    def _check(self, label: str, handle: str, record: Dict[str, Any]) -> Dict[str, Any]:
        error = reported_error(record)
        if self.policy.is_failed(record) or error:
            raise RemoteExecutionError(
                f"execution {handle} ended with status '{execution_status(record) or 'unknown'}'",
                extra=str(error) if error else None,
            ).with_stage(label)
        return record

    async def _ingest(self, slate: Slate, base: Dict[str, Any], trace: PipelineTrace) -> List[Any]:
        players: List[Any] = []
        try:
            handle = await self._create(INGEST, self.settings.agents.ingest or "", base)
            trace.ingest_exec = handle
            record = await self._wait(INGEST, handle)
            error = reported_error(record)
            if error or self.policy.is_failed(record):
                logger.warning("Remote ingest reported an error: %s", error or execution_status(record))
            else:
                players = extract_players(record)
        except RemoteError as exc:
            logger.warning("Remote ingest unavailable: %s", exc)

        if players:
            trace.ingest_source = "remote"
            return players

        logger.warning("Falling back to local CSV parsing for %s %s slate", slate.site, slate.sport)
        parsed = parse_csv(
            slate.csv_text,
            self.options.ingest_min_salary,
            self.options.ingest_max_players,
        )
        if not parsed:
            raise IngestionExhaustedError(
                "No players could be ingested from the uploaded CSV",
                extra="Remote ingest returned no players and the local parser found no usable rows "
                "(expected 'name' and 'salary' columns)",
            )
        trace.ingest_source = "fallback"
        return [player.model_dump(mode="json") for player in parsed]

    async def _signals(self, base: Dict[str, Any], players: List[Any], trace: PipelineTrace) -> Dict[str, Any]:
        agent_id = self.settings.agents.signals
        if not agent_id:
            logger.info("No signals agent configured; skipping signals stage")
            return {}
        handle = await self._create(SIGNALS, agent_id, {**base, "players": players})
        trace.signals_exec = handle
        record = self._check(SIGNALS, handle, await self._wait(SIGNALS, handle))
        return _as_dict(record.get("result"))

    async def _projections(
        self,
        base: Dict[str, Any],
        players: List[Any],
        signals: Dict[str, Any],
        trace: PipelineTrace,
    ) -> List[Any]:
        agent_id = self.settings.agents.projections or ""
        payloads = [
            {
                **base,
                "players": players,
                **signals,
                "options": {**base["options"], "llm": descriptor.model_dump(mode="json")},
            }
            for descriptor in self.projection_models
        ]
        labels = [f"{PROJECTIONS}[{d.provider}/{d.model}]" for d in self.projection_models]
        logger.info("Fanning out %s projection jobs", len(payloads))

        trace.proj_execs = [None] * len(payloads)

        async def _create_recorded(index: int, label: str, payload: Dict[str, Any]) -> str:
            handle = await self._create(label, agent_id, payload)
            trace.proj_execs[index] = handle
            return handle

        handles = await _gather_all(
            [_create_recorded(i, label, payload) for i, (label, payload) in enumerate(zip(labels, payloads))]
        )

        async def _wait_checked(label: str, handle: str) -> Dict[str, Any]:
            return self._check(label, handle, await self._wait(label, handle))

        records = await _gather_all(
            [_wait_checked(label, handle) for label, handle in zip(labels, handles)]
        )
        return [normalize_projection_set(record) for record in records]

    async def _consensus(self, base: Dict[str, Any], projection_sets: List[Any], trace: PipelineTrace) -> Any:
        payload = {
            "slate": base["slate"],
            "options": base["options"],
            "method": CONSENSUS_METHOD,
            "projection_sets": projection_sets,
        }
        handle = await self._create(CONSENSUS, self.settings.agents.consensus or "", payload)
        trace.cons_exec = handle
        record = self._check(CONSENSUS, handle, await self._wait(CONSENSUS, handle))
        return extract_consensus(record)

    async def _optimize(self, base: Dict[str, Any], consensus: Any, trace: PipelineTrace) -> Any:
        handle = await self._create(OPTIMIZER, self.settings.agents.optimizer or "", {**base, "consensus": consensus})
        trace.opt_exec = handle
        record = self._check(OPTIMIZER, handle, await self._wait(OPTIMIZER, handle))
        return extract_lineups(record)

    async def run(self, slate: Slate, trace: PipelineTrace | None = None) -> PipelineResult:
        """Run every stage for ``slate``; ``trace`` is filled in even when a stage fails."""

        trace = trace if trace is not None else PipelineTrace()
        base = base_payload(slate, self.options)

        players = await self._ingest(slate, base, trace)
        trace.player_count = len(players)
        logger.info("Ingested %s players (%s)", len(players), trace.ingest_source)

        signals = await self._signals(base, players, trace)
        projection_sets = await self._projections(base, players, signals, trace)
        consensus = await self._consensus(base, projection_sets, trace)
        lineups = await self._optimize(base, consensus, trace)
        logger.info("Pipeline finished for %s %s slate", slate.site, slate.sport)
        return PipelineResult(lineups=lineups, trace=trace)
