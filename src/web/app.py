"""
FastAPI application factory for the frame motion monitor preview.

Routes:
- / -> minimal HTML page with the live preview and status
- /api/* -> REST API (status, overlays, snapshot, MJPEG feed)
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from .routes import api

_INDEX_HTML = """<!doctype html>
<html>
<head><title>Frame Motion Monitor</title></head>
<body>
  <img src="/api/video_feed" alt="preview">
  <p id="summary"></p>
  <script>
    async function poll() {
      const r = await fetch("/api/status");
      const s = await r.json();
      document.getElementById("summary").textContent = s.summary;
    }
    setInterval(poll, 1000);
  </script>
</body>
</html>
"""


def create_app() -> FastAPI:
    """Create the FastAPI app and wire routes."""
    app = FastAPI(
        title="Frame Motion Monitor",
        version="0.1.0",
        description="Live preview of classified detection overlays",
    )

    app.include_router(api.router, prefix="/api")

    @app.get("/", response_class=HTMLResponse)
    def index():
        return _INDEX_HTML

    return app
