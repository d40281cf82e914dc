"""Launch orchestration: uvicorn thread + streamlit subprocess."""
from __future__ import annotations

import subprocess
import sys
import threading
import time
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

from git_tandem.logging_config import get_logger

logger = get_logger(__name__)


def _wait_for_api(api_port: int, timeout_seconds: float = 10.0) -> bool:
    """Poll the FastAPI summary path until it responds or timeout expires."""
    deadline = time.time() + timeout_seconds
    url = f"http://localhost:{api_port}/api/summary"
    while time.time() < deadline:
        try:
            with urlopen(url, timeout=1) as response:
                if response.status == 200:
                    return True
        except (URLError, OSError):
            pass
        time.sleep(0.2)
    return False


def launch(repo_path: str, api_port: int = 8000, git_timeout: float | None = None) -> None:
    """Start FastAPI (uvicorn) in a daemon thread and Streamlit as a subprocess."""
    import uvicorn

    from git_tandem.web.api import app

    app.state.repo_path = repo_path
    app.state.git_timeout = git_timeout
    streamlit_port = api_port + 1

    def _run_api() -> None:
        uvicorn.run(app, host="127.0.0.1", port=api_port, log_level="warning")

    api_thread = threading.Thread(target=_run_api, daemon=True)
    api_thread.start()

    if not _wait_for_api(api_port):
        logger.error("API server did not come up on port %d", api_port)
        print(f"Failed to start API server on http://localhost:{api_port}", file=sys.stderr)
        sys.exit(1)

    dashboard_path = str(Path(__file__).parent / "dashboard.py")

    print(f"Repository:  {repo_path}")
    print(f"API server:  http://localhost:{api_port}")
    print(f"Dashboard:   http://localhost:{streamlit_port}")
    print()

    try:
        proc = subprocess.run(
            [
                sys.executable, "-m", "streamlit", "run",
                dashboard_path,
                "--server.port", str(streamlit_port),
                "--server.headless", "true",
                "--browser.gatherUsageStats", "false",
                "--", f"--api-url=http://localhost:{api_port}",
            ],
            check=False,
        )
        sys.exit(proc.returncode)
    except KeyboardInterrupt:
        print("\nShutting down.")
        sys.exit(0)
