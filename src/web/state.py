import threading
import time

from models.frame import FrameResult


class SharedState:
    """
    Singleton class to share state between the frame loop and the web server.

    The frame loop writes from its worker thread; request handlers read from
    the server's threads. Everything crossing over is copied under a lock.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance.frame_lock = threading.Lock()
                    cls._instance._init_fields()
        return cls._instance

    def _init_fields(self):
        self.frame = None
        self.overlays = []
        self.summary = ""
        self.frame_index = 0
        self.count_by_state = {}
        self.running = False
        self.run_report = None
        self.system_stats = {
            "fps": 0.0,
            "start_time": 0,
            "last_frame_ts": None,
            "frames_processed": 0,
        }

    def reset(self):
        with self.frame_lock:
            self._init_fields()

    def publish(self, annotated, result: FrameResult):
        """Store the latest annotated frame and its classification."""
        with self.frame_lock:
            self.frame = annotated.copy()
            self.overlays = [box.to_dict() for box in result.boxes]
            self.summary = result.summary
            self.frame_index = result.frame_index
            self.count_by_state = result.count_by_state()

            now = time.time()
            stats = self.system_stats
            stats["frames_processed"] += 1
            start = stats.get("start_time") or now
            elapsed = now - start
            stats["fps"] = stats["frames_processed"] / elapsed if elapsed > 0 else 0.0
            stats["last_frame_ts"] = now

    def get_frame(self):
        """Get the latest annotated frame."""
        with self.frame_lock:
            if self.frame is None:
                return None
            return self.frame.copy()

    def get_overlays(self):
        with self.frame_lock:
            return self.frame_index, list(self.overlays)

    def set_running(self, running, report=None):
        with self.frame_lock:
            self.running = running
            if report is not None:
                self.run_report = report

    def update_system_stats(self, stats):
        with self.frame_lock:
            self.system_stats.update(stats)

    def get_snapshot(self):
        """Return a consistent copy of everything the status endpoint needs."""
        with self.frame_lock:
            return {
                "running": self.running,
                "frame_index": self.frame_index,
                "summary": self.summary,
                "count_by_state": dict(self.count_by_state),
                "system_stats": dict(self.system_stats),
                "run_report": self.run_report.to_dict() if self.run_report is not None else None,
            }


# Global instance
state = SharedState()
