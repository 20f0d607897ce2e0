import logging
import os
import time
from dataclasses import dataclass
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

FLUSH_EVERY = 1000


class LoopState(Enum):
    INIT = "init"
    REPLAYING = "replaying"
    LIVE = "live"
    DONE = "done"


@dataclass
class IterationRecord:
    """One successful recommendation: a row of the simulation log."""
    iteration: int
    uidx: int
    iidx: int
    metrics: dict
    elapsed: int

    def to_row(self) -> str:
        fields = [str(self.iteration), str(self.uidx), str(self.iidx)]
        fields.extend(repr(float(value)) for value in self.metrics.values())
        fields.append(str(self.elapsed))
        return "\t".join(fields) + "\n"


def log_header(metric_names) -> str:
    return "\t".join(["iter", "user", "item", *metric_names, "time"]) + "\n"


def read_log(filepath) -> list:
    """
    Reads the (uidx, iidx, elapsed) rows of a previous simulation log.

    Reading stops at the first row with fewer fields than the header or with
    unparsable values: it was left half-written by an interrupted run, and
    nothing after it can be trusted.
    """
    rows = []
    with open(filepath, "r", encoding="utf-8") as f:
        header = f.readline().rstrip("\n")
        if not header:
            return rows
        n_fields = len(header.split("\t"))

        for line_number, line in enumerate(f, start=2):
            fields = line.rstrip("\n").split("\t")
            if len(fields) < n_fields:
                logger.warning("%s: discarding rows from line %d on (short row)", filepath, line_number)
                break
            try:
                rows.append((int(fields[1]), int(fields[2]), int(fields[n_fields - 1])))
            except ValueError:
                logger.warning("%s: discarding rows from line %d on (malformed row)", filepath, line_number)
                break
    return rows


class Simulation:
    """
    Recommendation loop of a single algorithm over a fixed dataset.

    At every iteration a user is drawn uniformly among the users that may still
    receive recommendations, the recommender picks an item for them, learns from
    the historical rating of the pair, and the metrics are updated. Users with
    nothing left to recommend leave the pool for good.

    Args:
        name (str): Algorithm identifier, used in progress messages.
        recommender (InteractiveRecommender): Algorithm to simulate. Owned by this loop.
        metrics (dict): Ordered metric name -> factory (or metric instance).
        n_iter (int): Iteration budget. 0 runs until every user is exhausted.
        users (list): Users that can be sampled. Defaults to every user.
        user_seed (int): Seed of the user sampling generator.
        flush_every (int): Number of rows between log flushes.
        clock (callable): Time source in seconds, used for the elapsed time column.
    """
    def __init__(self, name: str, recommender, metrics: dict, n_iter: int = 0, users=None, user_seed: int = 0,
                 flush_every: int = FLUSH_EVERY, clock=time.perf_counter):
        self.name = name
        self.recommender = recommender
        self.metrics = {metric_name: metric() if callable(metric) else metric
                        for metric_name, metric in metrics.items()}
        self.n_iter = n_iter
        self.pool = list(users) if users is not None else list(range(recommender.n_users))
        self.user_rng = np.random.default_rng(user_seed)
        self.flush_every = flush_every
        self.clock = clock

        self.iteration = 0
        self.state = LoopState.INIT

    def has_ended(self) -> bool:
        if not self.pool:
            return True
        return self.n_iter > 0 and self.iteration >= self.n_iter

    def current_metrics(self) -> dict:
        return {metric_name: metric.compute() for metric_name, metric in self.metrics.items()}

    def _select(self):
        while self.pool:
            index = int(self.user_rng.integers(len(self.pool)))
            uidx = self.pool[index]
            iidx = self.recommender.next(uidx)
            if iidx is None:
                self.pool.pop(index)
                continue
            return uidx, iidx
        return None

    def _record(self, uidx: int, iidx: int, elapsed: int) -> IterationRecord:
        for metric in self.metrics.values():
            metric.update(uidx, iidx)
        record = IterationRecord(self.iteration, uidx, iidx, self.current_metrics(), elapsed)
        self.iteration += 1
        return record

    def step(self):
        """
        Runs one live iteration.

        Returns:
            IterationRecord or None: The recommendation made, None once the loop is over.
        """
        if self.has_ended():
            self.state = LoopState.DONE
            return None

        start = self.clock()
        selected = self._select()
        if selected is None:
            self.state = LoopState.DONE
            return None

        uidx, iidx = selected
        self.recommender.update(uidx, iidx)
        elapsed = int((self.clock() - start) * 1000)
        return self._record(uidx, iidx, elapsed)

    def replay(self, rows):
        """
        Rebuilds the state reached by a previous run from its logged rows.

        The user draws and the recommender choices are repeated for every row, so
        all the random generators end up where the interrupted run left them. If
        the repeated choice does not match the log (a log written with another
        seed or configuration), the remaining rows are absorbed in a single
        ``warmup``.

        Yields:
            IterationRecord: The replayed rows, with recomputed metrics.
        """
        self.state = LoopState.REPLAYING
        rows = self._valid_rows(rows)

        for position, (uidx, iidx, elapsed) in enumerate(rows):
            if self._select() != (uidx, iidx):
                logger.warning("%s: log diverges from this configuration at iteration %d",
                               self.name, self.iteration)
                remaining = rows[position:]
                self.recommender.warmup([(u, i) for u, i, _ in remaining])
                for u, i, e in remaining:
                    yield self._record(u, i, e)
                return

            self.recommender.update(uidx, iidx)
            yield self._record(uidx, iidx, elapsed)

    def _valid_rows(self, rows) -> list:
        """Rows up to the first one with an out-of-range user or item."""
        n_users, n_items = self.recommender.n_users, self.recommender.n_items
        valid = []
        for uidx, iidx, elapsed in rows:
            if not (0 <= uidx < n_users and 0 <= iidx < n_items):
                logger.warning("%s: invalid pair (%d, %d) at iteration %d, stopping recovery",
                               self.name, uidx, iidx, len(valid))
                break
            valid.append((uidx, iidx, elapsed))
        return valid

    def run(self, log_path, recover: bool = False, progress=None) -> dict:
        """
        Runs the whole simulation, writing one row per iteration to ``log_path``.

        Args:
            log_path (str): Log file. It doubles as the checkpoint to recover from.
            recover (bool): Continue from the rows of an existing log instead of
                starting over.
            progress (tqdm): Optional progress bar, advanced once per row.

        Returns:
            dict: Final metric values.
        """
        rows = []
        if recover and os.path.exists(log_path):
            rows = read_log(log_path)

        with open(log_path, "w", encoding="utf-8") as f:
            f.write(log_header(self.metrics))

            start = time.perf_counter()
            for record in self.replay(rows):
                self._write(f, record, progress)
            if rows:
                logger.info("%s: recovered %d iterations (%d ms)", self.name, self.iteration,
                            int((time.perf_counter() - start) * 1000))

            self.state = LoopState.LIVE
            start = time.perf_counter()
            while True:
                record = self.step()
                if record is None:
                    break
                self._write(f, record, progress)
                if self.iteration % self.flush_every == 0:
                    logger.info("%s: iteration %d finished (%d ms)", self.name, self.iteration,
                                int((time.perf_counter() - start) * 1000))
                    start = time.perf_counter()

        self.state = LoopState.DONE
        return self.current_metrics()

    def _write(self, f, record: IterationRecord, progress=None):
        f.write(record.to_row())
        if (record.iteration + 1) % self.flush_every == 0:
            f.flush()
        if progress is not None:
            progress.update(1)
