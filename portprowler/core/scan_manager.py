#!/usr/bin/env python3
"""
PortProwler - Scan Manager
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Job distribution and worker pool for a single-host scan.

One job is built per port. A fixed pool of worker threads pulls jobs from a
bounded queue and runs each job's protocols strictly in order, publishing one
PortResult per protocol on the result stream. A dispatcher thread feeds the job
queue, waits for every worker to exit and only then closes the stream, so the
end of iteration is the "scan complete" signal.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from portprowler.core.errors import ConfigurationError, PrivilegeError
from portprowler.core.models import PortJob, PortResult
from portprowler.core.os_detect import detect_os_for_result
from portprowler.core.privilege import can_open_raw_socket
from portprowler.core.service_detect import detect_service
from portprowler.core.syn_scanner import stealth_scan
from portprowler.core.tcp_probe import tcp_scan
from portprowler.core.udp_probe import udp_scan
from portprowler.utils.constants import (
    DEFAULT_PROTOCOLS,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
    PROTO_STEALTH,
    PROTO_TCP,
    PROTO_UDP,
    SCAN_PROTOCOLS,
    STATE_FILTERED,
    STATE_OPEN_FILTERED,
)

ProbeFn = Callable[[str, int, float, Optional[threading.Event]], PortResult]
ServiceDetector = Callable[[PortResult, float], PortResult]
OSDetector = Callable[[PortResult], Tuple[str, str]]
PrivilegeCheck = Callable[[], Tuple[bool, Optional[str]]]

DEFAULT_PROBES: Dict[str, ProbeFn] = {
    PROTO_TCP: tcp_scan,
    PROTO_UDP: udp_scan,
    PROTO_STEALTH: stealth_scan,
}

# Queue markers
_STOP = object()
_CLOSED = object()


@dataclass
class ScanConfig:
    """Runtime configuration for a ScanManager run."""

    target: str
    ip: str
    ports: Sequence[int]
    protocols: Sequence[str] = DEFAULT_PROTOCOLS
    workers: int = DEFAULT_WORKERS
    timeout: float = DEFAULT_TIMEOUT
    service_detect: bool = False
    os_detect: bool = False


def resolve_protocols(tcp: bool = False, udp: bool = False, stealth: bool = False) -> Tuple[str, ...]:
    """
    Turn protocol flags into the ordered protocol list used for every job.

    Stealth runs first, then TCP, then UDP. TCP alone when nothing is selected.
    """
    selected: List[str] = []
    if stealth:
        selected.append(PROTO_STEALTH)
    if tcp:
        selected.append(PROTO_TCP)
    if udp:
        selected.append(PROTO_UDP)
    return tuple(selected) or DEFAULT_PROTOCOLS


def build_jobs(target: str, ip: str, ports: Iterable[int], protocols: Sequence[str]) -> List[PortJob]:
    """Build one immutable job per port, each carrying the same protocol order."""
    protos = tuple(protocols) or DEFAULT_PROTOCOLS
    return [PortJob(target=target, ip=ip, port=int(p), protocols=protos) for p in ports]


class ResultStream:
    """
    Iterable channel from the worker pool to the caller.

    Iteration blocks until the next result arrives and stops once the
    dispatcher has closed the stream (after every worker has exited).
    """

    def __init__(self, cancel_event: threading.Event, expected: int):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._cancel = cancel_event
        self._done = threading.Event()
        self._close_lock = threading.Lock()
        self.expected = expected

    # Producer side (workers / dispatcher)

    def publish(self, result: PortResult) -> None:
        self._queue.put(result)

    def close(self) -> None:
        with self._close_lock:
            if self._done.is_set():
                return
            self._queue.put(_CLOSED)
            self._done.set()

    # Consumer side

    @property
    def closed(self) -> bool:
        return self._done.is_set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Ask workers to stop; the stream still closes once they have exited."""
        self._cancel.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the stream is closed. Returns False on timeout."""
        return self._done.wait(timeout)

    def __iter__(self) -> Iterator[PortResult]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any other consumer.
                self._queue.put(_CLOSED)
                return
            yield item  # type: ignore[misc]

    def collect(self) -> List[PortResult]:
        """Drain the stream into a list (blocks until the scan completes)."""
        return list(self)


class ScanManager:
    """Orchestrates job creation, the privilege gate and the worker pool."""

    def __init__(
        self,
        config: ScanConfig,
        *,
        probes: Optional[Mapping[str, ProbeFn]] = None,
        privilege_check: Optional[PrivilegeCheck] = None,
        service_detector: Optional[ServiceDetector] = None,
        os_detector: Optional[OSDetector] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.probes: Dict[str, ProbeFn] = dict(DEFAULT_PROBES)
        if probes:
            self.probes.update(probes)
        self.privilege_check = privilege_check or can_open_raw_socket
        self.service_detector = service_detector or detect_service
        self.os_detector = os_detector or detect_os_for_result
        self.logger = logger or logging.getLogger(__name__)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validate(self) -> Tuple[str, ...]:
        cfg = self.config
        if not cfg.target or not cfg.ip:
            raise ConfigurationError("invalid manager config: missing target/ip")
        if not cfg.ports:
            raise ConfigurationError("no ports to scan")
        protocols = tuple(cfg.protocols) or DEFAULT_PROTOCOLS
        unknown = [p for p in protocols if p not in SCAN_PROTOCOLS]
        if unknown:
            raise ConfigurationError(f"unknown protocol(s): {', '.join(unknown)}")
        return protocols

    def _check_privileges(self, protocols: Sequence[str]) -> None:
        if PROTO_STEALTH not in protocols:
            return
        allowed, reason = self.privilege_check()
        if not allowed:
            self.logger.warning("Stealth scan refused: %s", reason)
            raise PrivilegeError(reason)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, cancel_event: Optional[threading.Event] = None) -> ResultStream:
        """
        Start the scan and return its result stream.

        Raises:
            ConfigurationError: invalid target/ip, no ports or unknown protocol
            PrivilegeError: stealth requested but raw sockets are not available

        Both are raised before any worker thread starts.
        """
        protocols = self._validate()
        self._check_privileges(protocols)

        cfg = self.config
        cancel = cancel_event or threading.Event()
        jobs = build_jobs(cfg.target, cfg.ip, cfg.ports, protocols)
        worker_count = max(1, int(cfg.workers or 0))
        stream = ResultStream(cancel, expected=len(jobs) * len(protocols))

        # Room for every job plus one stop marker per worker: the dispatcher never blocks.
        job_queue: "queue.Queue[object]" = queue.Queue(maxsize=len(jobs) + worker_count)

        self.logger.info(
            "Scan start: %s (%s) %d ports x %s, %d workers, timeout %.2fs",
            cfg.target,
            cfg.ip,
            len(jobs),
            "/".join(protocols),
            worker_count,
            cfg.timeout,
        )

        workers = [
            threading.Thread(
                target=self._worker_loop,
                args=(job_queue, stream, cancel),
                name=f"portprowler-worker-{i}",
                daemon=True,
            )
            for i in range(worker_count)
        ]
        for t in workers:
            t.start()

        dispatcher = threading.Thread(
            target=self._dispatch,
            args=(jobs, job_queue, workers, stream, cancel),
            name="portprowler-dispatcher",
            daemon=True,
        )
        dispatcher.start()
        return stream

    def _dispatch(
        self,
        jobs: Sequence[PortJob],
        job_queue: "queue.Queue[object]",
        workers: Sequence[threading.Thread],
        stream: ResultStream,
        cancel: threading.Event,
    ) -> None:
        enqueued = 0
        try:
            for job in jobs:
                if cancel.is_set():
                    break
                job_queue.put(job)
                enqueued += 1
        finally:
            for _ in workers:
                job_queue.put(_STOP)
            for t in workers:
                t.join()
            stream.close()
            if cancel.is_set():
                self.logger.info("Scan cancelled after %d/%d jobs enqueued", enqueued, len(jobs))
            else:
                self.logger.info("Scan complete: %d jobs", len(jobs))

    def _worker_loop(
        self,
        job_queue: "queue.Queue[object]",
        stream: ResultStream,
        cancel: threading.Event,
    ) -> None:
        while True:
            if cancel.is_set():
                return
            job = job_queue.get()
            if job is _STOP:
                return
            for protocol in job.protocols:
                if cancel.is_set():
                    return
                result = self._execute(job, protocol, cancel)
                if cancel.is_set():
                    return
                stream.publish(result)

    def _execute(self, job: PortJob, protocol: str, cancel: threading.Event) -> PortResult:
        """Run one probe (plus enrichment) and always return exactly one result."""
        cfg = self.config
        self.logger.debug("worker: scanning %s %s:%d", protocol, job.ip, job.port)
        try:
            result = self.probes[protocol](job.ip, job.port, cfg.timeout, cancel)
            # Fails with TypeError when a probe returns something other than a PortResult.
            result = replace(
                result, target=job.target, ip=job.ip, port=job.port, protocol=protocol
            )
        except Exception as exc:
            self.logger.warning(
                "%s probe failed on %s:%d: %s", protocol, job.ip, job.port, exc, exc_info=True
            )
            return PortResult(
                target=job.target,
                ip=job.ip,
                port=job.port,
                protocol=protocol,
                state=STATE_OPEN_FILTERED if protocol == PROTO_UDP else STATE_FILTERED,
                error=str(exc) or exc.__class__.__name__,
            )

        if result.is_open:
            result = self._enrich(result)
        return result

    def _enrich(self, result: PortResult) -> PortResult:
        cfg = self.config
        if cfg.service_detect:
            try:
                enriched = self.service_detector(result, cfg.timeout)
                # Detectors may only add metadata.
                result = replace(
                    result,
                    service=enriched.service,
                    banner=enriched.banner,
                    confidence=enriched.confidence,
                )
            except Exception:
                self.logger.debug(
                    "service detection failed for %s:%d", result.ip, result.port, exc_info=True
                )
        if cfg.os_detect:
            try:
                guess, confidence = self.os_detector(result)
            except Exception:
                self.logger.debug("os detection failed for %s:%d", result.ip, result.port, exc_info=True)
                guess, confidence = "", ""
            if guess:
                result = replace(result, os_guess=guess, confidence=confidence)
        return result
