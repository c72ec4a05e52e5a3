"""Dask-based execution engine for pipeshell.

Every pipe of a plan becomes a Dask Bag. Source and collection pipes are
read inside a task and split into partitions, record-wise pipes
(map/filter/flat_map) run per partition, and any other transform runs as a
single task over the whole of its upstreams' output. Bag order is
preserved, so the terminal's records come back in plan-execution order.
"""

import itertools
import multiprocessing
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

import dask
import dask.bag as db
from dask import delayed

from ...engine import Engine, evaluate_pipe

if TYPE_CHECKING:
    from ...pipe import Pipe
    from ...planner import ExecutionPlan
    from ...sources import Sink


def _apply_partition(partition: Iterable, pipe: "Pipe") -> List:
    return list(pipe.transform(partition))


def _evaluate_whole(pipe: "Pipe", upstream_partitions: Sequence[Sequence[List]]) -> List:
    upstream_outputs = [
        list(itertools.chain.from_iterable(parts)) for parts in upstream_partitions
    ]
    return evaluate_pipe(pipe, upstream_outputs)


class DaskEngine(Engine):
    """Dask Bag execution engine.

    Args:
        scheduler: Dask scheduler to use ("threads", "processes" or "synchronous").
            Default is "threads".
        num_workers: Number of workers (defaults to CPU count)
        npartitions: Partitions per source read (defaults to ``num_workers``)

    Example:
        >>> from pipeshell.engines import DaskEngine
        >>> engine = DaskEngine(scheduler="processes", npartitions=8)
    """

    def __init__(
        self,
        scheduler: str = "threads",
        num_workers: Optional[int] = None,
        npartitions: Optional[int] = None,
    ):
        self.scheduler = scheduler
        self.num_workers = num_workers or multiprocessing.cpu_count()
        self.npartitions = npartitions or self.num_workers
        if self.npartitions < 1:
            raise ValueError(f"npartitions must be positive, got {self.npartitions}")

    def run(self, plan: "ExecutionPlan", sink: "Sink") -> int:
        """Execute plan on Dask and write the terminal's records to sink."""
        bags: Dict[int, db.Bag] = {}
        for pipe in plan.pipes:
            bags[pipe.id] = self._to_bag(pipe, [bags[u.id] for u in pipe.upstreams])

        with dask.config.set(scheduler=self.scheduler, num_workers=self.num_workers):
            records = bags[plan.terminal.id].compute()

        return sink.write(records)

    def _to_bag(self, pipe: "Pipe", upstream_bags: List[db.Bag]) -> db.Bag:
        if not pipe.upstreams:
            bag = db.from_delayed([delayed(evaluate_pipe, pure=False)(pipe, [])])
            if self.npartitions > 1:
                bag = bag.repartition(npartitions=self.npartitions)
            return bag

        if pipe.partitionwise and len(upstream_bags) == 1:
            return upstream_bags[0].map_partitions(_apply_partition, pipe)

        upstream_partitions = [bag.to_delayed() for bag in upstream_bags]
        return db.from_delayed(
            [delayed(_evaluate_whole, pure=False)(pipe, upstream_partitions)]
        )
