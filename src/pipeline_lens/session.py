"""
Per-target state and active target selection.

TargetContext owns everything derived from one target's polls: the rate
baseline, the component and runtime histories, the latest metrics view and
the latest resolved graph. Nothing is shared between contexts, so several
targets can be tracked side by side without bleeding into each other.

MonitorSession adds the notion of a single active target on top of a set
of contexts:
- select() resets the affected contexts and bumps a generation counter
- every fetch records (target, generation) before awaiting the network
- a result whose (target, generation) no longer matches on arrival is
  discarded, so a slow poll for a previous selection can never land in
  the current one

Cancellation is advisory only: in-flight requests are not aborted, their
results are ignored.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from pipeline_lens.client import PipelineClient, create_client
from pipeline_lens.exceptions import NoTargetSelectedError, StaleResultError, UnknownTargetError
from pipeline_lens.graph.resolver import resolve_graph
from pipeline_lens.metrics.aggregator import aggregate
from pipeline_lens.metrics.history import MAX_HISTORY_POINTS, MetricsHistory
from pipeline_lens.metrics.parser import parse_exposition
from pipeline_lens.metrics.rates import RateComputer
from pipeline_lens.metrics.runtime import MAX_RUNTIME_HISTORY, RuntimeHistory, runtime_snapshot_from_samples
from pipeline_lens.targets import Target, find_target
from pipeline_lens.telemetry import record_config_refresh, record_poll
from pipeline_lens.traffic import EdgeWeight, resolve_node_metrics, weigh_edges
from pipeline_lens.types import MetricsTimePoint, MetricsView, PipelineGraph

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TargetContext:
    """
    All derived state for one monitored target.

    A poll cycle is parse -> aggregate -> rates -> history, run synchronously
    by ingest_metrics(). The async lock is held by MonitorSession for the
    whole fetch-and-ingest cycle so only one cycle per target is in flight.

    Example:
        ctx = TargetContext("orders")
        view = ctx.ingest_metrics(metrics_text, now=time.monotonic())
        ctx.history.get_path("root.input")
    """

    def __init__(
        self,
        name: str,
        history_points: int = MAX_HISTORY_POINTS,
        runtime_history_points: int = MAX_RUNTIME_HISTORY,
    ) -> None:
        self.name = name
        self.lock = asyncio.Lock()
        self.rates = RateComputer()
        self.history = MetricsHistory(history_points)
        self.runtime = RuntimeHistory(runtime_history_points)
        self.latest: MetricsView | None = None
        self.graph: PipelineGraph | None = None
        self.graph_fetched_at: float | None = None
        self.history_view: dict[str, dict[str, list[MetricsTimePoint]]] = {"byPath": {}, "byLabel": {}}

    def ingest_metrics(self, text: str | bytes, now: float) -> MetricsView:
        """
        Run one poll's worth of exposition text through the pipeline.

        Args:
            text: Exposition text from the metrics endpoint
            now: Poll time in seconds

        Returns:
            The rate-stamped MetricsView for this poll

        Raises:
            ParseError: If the text can't be decoded
        """
        samples = parse_exposition(text)
        view = aggregate(samples)
        self.rates.apply(view, now)
        self.history.record(view)
        self.runtime.append(runtime_snapshot_from_samples(samples, now))
        self.latest = view
        self.history_view = self.history.snapshot()
        record_poll(self.name, "ok", len(samples))
        return view

    def ingest_config(self, text: str, now: float) -> PipelineGraph:
        """
        Resolve a freshly fetched pipeline definition.

        Raises:
            ParseError: If the YAML can't be parsed. The previous graph is kept.
        """
        graph = resolve_graph(text)
        self.graph = graph
        self.graph_fetched_at = now
        record_config_refresh(self.name, "ok", len(graph.nodes))
        return graph

    def config_due(self, now: float, ttl: float) -> bool:
        return self.graph_fetched_at is None or now - self.graph_fetched_at >= ttl

    def edge_weights(self) -> dict[str, EdgeWeight] | None:
        """Edge weights for the latest graph and metrics, None until both exist."""
        if self.graph is None or self.latest is None:
            return None
        return weigh_edges(self.graph, resolve_node_metrics(self.graph, self.latest))

    def reset(self) -> None:
        """Drop baseline, histories, cached copies and graph together."""
        self.rates.reset()
        self.history.clear()
        self.runtime.clear()
        self.latest = None
        self.graph = None
        self.graph_fetched_at = None
        self.history_view = {"byPath": {}, "byLabel": {}}


class MonitorSession:
    """
    Tracks the active target and routes poll results to its context.

    Args:
        targets: Registered targets
        client_factory: Builds a PipelineClient for a target (called once
            per target, lazily)
        clock: Time source in seconds (default time.monotonic)
        history_points: Per-component history bound
        runtime_history_points: Runtime history bound

    Example:
        session = MonitorSession(load_targets(path))
        session.select("orders")
        graph = await session.refresh_config()
        view = await session.poll_metrics()
    """

    def __init__(
        self,
        targets: list[Target],
        client_factory: Callable[[Target], PipelineClient] | None = None,
        clock: Clock = time.monotonic,
        history_points: int = MAX_HISTORY_POINTS,
        runtime_history_points: int = MAX_RUNTIME_HISTORY,
    ) -> None:
        self.targets = list(targets)
        self._client_factory = client_factory or (lambda t: create_client(t.url))
        self._clock = clock
        self._clients: dict[str, PipelineClient] = {}
        self._contexts: dict[str, TargetContext] = {
            t.name: TargetContext(t.name, history_points, runtime_history_points) for t in self.targets
        }
        self._active: str | None = None
        self._generation = 0

    @property
    def active(self) -> str | None:
        return self._active

    @property
    def generation(self) -> int:
        return self._generation

    def context(self, name: str) -> TargetContext:
        """
        Get the context for a target.

        Raises:
            UnknownTargetError: If the name isn't registered
        """
        ctx = self._contexts.get(name)
        if ctx is None:
            raise UnknownTargetError(name)
        return ctx

    def active_context(self) -> TargetContext:
        """
        Get the active target's context.

        Raises:
            NoTargetSelectedError: If nothing is selected
        """
        if self._active is None:
            raise NoTargetSelectedError()
        return self._contexts[self._active]

    def select(self, name: str | None) -> TargetContext | None:
        """
        Switch the active target.

        Resets the previous and the new target's state and invalidates any
        in-flight results. Selecting the already active target is a no-op.

        Raises:
            UnknownTargetError: If the name isn't registered
        """
        if name == self._active:
            return self._contexts[name] if name is not None else None
        if name is not None:
            self.context(name)

        previous = self._active
        self._generation += 1
        self._active = name
        if previous is not None:
            self._contexts[previous].reset()
        if name is None:
            logger.info("Target deselected")
            return None

        ctx = self._contexts[name]
        ctx.reset()
        logger.info("Selected target %s (generation %d)", name, self._generation)
        return ctx

    def client(self, name: str) -> PipelineClient:
        client = self._clients.get(name)
        if client is None:
            client = self._clients[name] = self._client_factory(find_target(self.targets, name))
        return client

    def _ticket(self) -> tuple[str, int]:
        if self._active is None:
            raise NoTargetSelectedError()
        return self._active, self._generation

    def _ensure_current(self, target: str, generation: int) -> None:
        if target != self._active or generation != self._generation:
            raise StaleResultError(target, self._active)

    async def poll_metrics(self) -> MetricsView | None:
        """
        Run one fetch-parse-aggregate-rate-history cycle for the active target.

        Returns:
            The new MetricsView, or None if a cycle for this target was
            already in flight or the result arrived after a target switch

        Raises:
            NoTargetSelectedError: If nothing is selected
            ParseError: If the metrics text can't be decoded
            httpx.HTTPError: Whatever the fetch raised
        """
        name, generation = self._ticket()
        ctx = self._contexts[name]
        if ctx.lock.locked():
            logger.debug("Poll for %s already in flight, skipping", name)
            return None

        async with ctx.lock:
            try:
                body = await self.client(name).fetch_metrics()
                self._ensure_current(name, generation)
                return ctx.ingest_metrics(body, now=self._clock())
            except StaleResultError as e:
                logger.info("%s", e)
                record_poll(name, "stale")
                return None
            except Exception:
                record_poll(name, "error")
                raise

    async def refresh_config(self) -> PipelineGraph | None:
        """
        Fetch and resolve the active target's pipeline definition.

        Returns:
            The resolved graph, or None if the result arrived after a target switch

        Raises:
            NoTargetSelectedError: If nothing is selected
            ParseError: If the YAML can't be parsed
            httpx.HTTPError: Whatever the fetch raised
        """
        name, generation = self._ticket()
        try:
            text = await self.client(name).fetch_config()
            self._ensure_current(name, generation)
            return self._contexts[name].ingest_config(text, now=self._clock())
        except StaleResultError as e:
            logger.info("%s", e)
            record_config_refresh(name, "stale")
            return None
        except Exception:
            record_config_refresh(name, "error")
            raise

    def config_due(self, ttl: float) -> bool:
        return self.active_context().config_due(self._clock(), ttl)

    async def aclose(self) -> None:
        """Close every HTTP client created by this session."""
        for client in self._clients.values():
            await client.http.aclose()
        self._clients.clear()
