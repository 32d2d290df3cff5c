"""
Pipeline engine for the frame motion monitor.

This module provides the frame loop: it pulls frames from an
ObservationSource in order, runs the detector on each one, classifies the
detections with the TemporalTracker and forwards the classified overlays to
rendering sinks and frame-result callbacks.

Frames are processed strictly one at a time. Detection is handed to a
single-worker executor so there is never more than one detector call in
flight, and the loop waits for it before touching tracker state or reading
the next frame.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from models.detection import Detection
from models.frame import FrameData, FrameResult
from models.status import RunReport, RunStatus, SourceStatus
from observation import ObservationSource, create_source_from_config
from inference.backend import Detector
from tracking import CoordinateMapper, TemporalTracker
from pipeline.summary import DEFAULT_MIN_CONFIDENCE, summarize_detections
from pipeline.stages.annotate import RenderingSink


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_consecutive_failures: Max empty reads (source still READING) before the run fails.
        read_retry_delay: Seconds to wait after an empty read.
        stats_log_interval: Seconds between status log messages.
        summary_min_confidence: Confidence above which detections appear in the text summary.
        display_size: (width, height) used for coordinate mapping. None = size of the
            display view (the frame transposed when the mapper swaps axes).
        max_frames: Stop after this many processed frames. None = until the source ends.
        cancel_poll_interval: Seconds between stop checks while waiting on the detector.
    """
    max_consecutive_failures: int = 10
    read_retry_delay: float = 0.5
    stats_log_interval: float = 60.0
    summary_min_confidence: float = DEFAULT_MIN_CONFIDENCE
    display_size: Optional[Tuple[int, int]] = None
    max_frames: Optional[int] = None
    cancel_poll_interval: float = 0.05


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detector_failures: int = 0
    count_by_state: Dict[str, int] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0


class PipelineEngine:
    """
    Frame loop driving source -> detector -> tracker -> sinks.

    This engine:
    - Reads frames from any ObservationSource while its status is READING
    - Runs the detector with at most one call in flight
    - Treats a detector exception as zero detections for that frame
    - Classifies detections with the TemporalTracker
    - Delivers ClassifiedBox lists to sinks and FrameResults to callbacks in frame order

    Example:
        source = OpenCVSource(OpenCVSourceConfig(path="clip.mp4"))
        engine = PipelineEngine(source, detector, TemporalTracker(), PipelineConfig())
        report = engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: Detector,
        tracker: TemporalTracker,
        config: PipelineConfig,
        sinks: Optional[Sequence[RenderingSink]] = None,
    ):
        self.source = source
        self.detector = detector
        self.tracker = tracker
        self.config = config
        self.stats = PipelineStats()
        self.report: Optional[RunReport] = None
        self._sinks: List[RenderingSink] = list(sinks or [])
        self._callbacks: List[Callable[[FrameResult], None]] = []
        self._stop_event = threading.Event()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def add_sink(self, sink: RenderingSink) -> None:
        """Add a sink whose render(boxes) is called once per processed frame."""
        self._sinks.append(sink)

    def add_callback(self, callback: Callable[[FrameResult], None]) -> None:
        """
        Add a callback to be called after each frame is processed.

        Args:
            callback: Function taking the FrameResult of the frame.
        """
        self._callbacks.append(callback)

    def start(self) -> threading.Thread:
        """Run the frame loop on a background worker thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Pipeline is already running")

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="frame-loop", daemon=True)
        self._thread.start()
        return self._thread

    def wait(self, timeout: Optional[float] = None) -> Optional[RunReport]:
        """Wait for a run started with start() and return its report."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self.report

    def stop(self) -> None:
        """Signal the pipeline to stop before its next frame read."""
        self._stop_event.set()

    def run(self) -> RunReport:
        """
        Run the frame loop on the calling thread.

        Opens the source, processes frames until the source completes, fails,
        or stop() is called, then closes resources.

        Returns:
            RunReport describing how the run ended.
        """
        self._stop_event.clear()
        return self._run_loop()

    def _run_loop(self) -> RunReport:
        self._running = True
        self.stats = PipelineStats()
        self.tracker.reset()
        report = RunReport(status=RunStatus.COMPLETED, started_at=self.stats.start_time)

        try:
            try:
                self.source.open()
            except Exception as e:
                logging.error(f"Failed to open source {self.source.source_id}: {e}")
                return self._finish(report, RunStatus.SOURCE_ERROR, str(e))

            if self.source.status is SourceStatus.FAILED:
                reason = self.source.failure_reason or "source failed to initialize"
                logging.error(f"Source {self.source.source_id} failed at start: {reason}")
                return self._finish(report, RunStatus.SOURCE_ERROR, reason)

            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="detector")
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while not self._stop_event.is_set() and self.source.status is SourceStatus.READING:
                frame_data = self.source.read()

                if frame_data is None:
                    if self.source.status is not SourceStatus.READING:
                        break
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        return self._finish(
                            report,
                            RunStatus.FAILED,
                            f"{self.stats.consecutive_failures} consecutive frame read failures",
                        )
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(self.config.read_retry_delay)
                    continue

                self.stats.consecutive_failures = 0
                result = self._process_frame(frame_data)
                if result is None:
                    break  # stopped while the detector was running

                self._deliver(result)
                self._handle_periodic_tasks()

                if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
                    logging.info(f"Frame limit reached ({self.config.max_frames}), stopping")
                    break

            if self._stop_event.is_set():
                return self._finish(report, RunStatus.CANCELLED)
            if self.source.status is SourceStatus.FAILED:
                reason = self.source.failure_reason or "source failed"
                logging.error(f"Source failed mid-stream: {reason}")
                return self._finish(report, RunStatus.FAILED, reason)
            return self._finish(report, RunStatus.COMPLETED)

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
            return self._finish(report, RunStatus.CANCELLED)
        except Exception as e:
            logging.exception(f"Pipeline error: {e}")
            return self._finish(report, RunStatus.FAILED, str(e))
        finally:
            self._cleanup()

    def _detect(self, frame_data: FrameData) -> Optional[Tuple[List[Detection], Optional[str]]]:
        """
        Run the detector for one frame and wait for it.

        Returns (detections, error) or None if stop() was called before the
        result could be used.
        """
        future: Future = self._executor.submit(self.detector.detect, frame_data.frame)

        while not future.done():
            wait([future], timeout=self.config.cancel_poll_interval)
            if self._stop_event.is_set() and not future.done():
                future.cancel()
                logging.info(
                    f"Stop requested during detection of frame {frame_data.frame_index}, "
                    "discarding in-flight result"
                )
                return None

        if self._stop_event.is_set():
            return None

        error = future.exception()
        if error is not None:
            self.stats.detector_failures += 1
            logging.warning(f"Detector failed on frame {frame_data.frame_index}: {error}")
            return [], str(error)

        return list(future.result() or []), None

    def _process_frame(self, frame_data: FrameData) -> Optional[FrameResult]:
        """
        Detect and classify a single frame.

        Returns the FrameResult, or None if the run was stopped mid-frame.
        """
        outcome = self._detect(frame_data)
        if outcome is None:
            return None
        detections, error = outcome

        display_size = self.config.display_size or self._display_view_size(frame_data)
        boxes = self.tracker.update(detections, display_size)
        self.stats.frame_count += 1

        result = FrameResult(
            frame_data=frame_data,
            detections=detections,
            boxes=boxes,
            summary=summarize_detections(detections, self.config.summary_min_confidence),
            detector_error=error,
            display_size=display_size,
        )

        for state, count in result.count_by_state().items():
            self.stats.count_by_state[state] = self.stats.count_by_state.get(state, 0) + count

        if self.stats.frame_count % 30 == 0:
            logging.debug(
                f"[TRACK] frame={frame_data.frame_index} boxes={len(boxes)} "
                f"states={result.count_by_state()}"
            )

        return result

    def _display_view_size(self, frame_data: FrameData) -> Tuple[int, int]:
        """Size of the frame as displayed: (height, width) when axes are swapped."""
        if self.tracker.mapper.swap_axes:
            return (frame_data.height, frame_data.width)
        return frame_data.size

    def _deliver(self, result: FrameResult) -> None:
        for sink in self._sinks:
            try:
                sink.render(result.boxes)
            except Exception as e:
                logging.warning(f"Rendering sink error: {e}")

        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

    def _handle_periodic_tasks(self) -> None:
        """Log statistics periodically."""
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            elapsed = now - self.stats.start_time
            fps = self.stats.frame_count / elapsed if elapsed > 0 else 0.0
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, fps={fps:.1f}, "
                f"detector_failures={self.stats.detector_failures}, "
                f"by_state={self.stats.count_by_state}"
            )
            self.stats.last_stats_log_time = now

    def _finish(self, report: RunReport, status: RunStatus, reason: Optional[str] = None) -> RunReport:
        report.status = status
        report.reason = reason
        report.frames_processed = self.stats.frame_count
        report.detector_failures = self.stats.detector_failures
        report.finished_at = time.time()
        self.report = report
        logging.info(
            f"Pipeline finished: status={status.value}, frames={report.frames_processed}, "
            f"detector_failures={report.detector_failures}"
            + (f", reason={reason}" if reason else "")
        )
        return report

    def _cleanup(self) -> None:
        """Clean up resources."""
        self._running = False

        if self._executor is not None:
            # A hung detector call keeps its worker thread; don't block on it.
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        logging.info("Pipeline stopped")


def create_engine_from_config(
    config: Dict[str, Any],
    detector: Detector,
    source: Optional[ObservationSource] = None,
    max_frames: Optional[int] = None,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the config dict.

    Args:
        config: Full application config dict.
        detector: Detector built with inference.factory.build_detector.
        source: Frame source. None = build one from the ``source`` section.
        max_frames: Optional frame limit.
    """
    source_cfg = config.get("source", {}) or {}
    if source is None:
        source = create_source_from_config(source_cfg, source_id="main-video")

    tracking_cfg = config.get("tracking", {}) or {}
    tracker = TemporalTracker(
        mapper=CoordinateMapper(swap_axes=bool(tracking_cfg.get("swap_axes", True))),
        movement_threshold=float(tracking_cfg.get("movement_threshold_px", 10.0)),
    )

    display_cfg = config.get("display", {}) or {}
    display_size = None
    if display_cfg.get("width") and display_cfg.get("height"):
        display_size = (int(display_cfg["width"]), int(display_cfg["height"]))

    summary_cfg = config.get("summary", {}) or {}
    pipeline_config = PipelineConfig(
        max_consecutive_failures=int(source_cfg.get("max_consecutive_failures", 10)),
        read_retry_delay=float(source_cfg.get("read_retry_delay", 0.5)),
        summary_min_confidence=float(summary_cfg.get("min_confidence", DEFAULT_MIN_CONFIDENCE)),
        display_size=display_size,
        max_frames=max_frames,
    )

    return PipelineEngine(source, detector, tracker, pipeline_config)
