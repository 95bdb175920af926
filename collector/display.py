"""Optional Xvfb virtual display for headful browser runs."""

import os
import subprocess
from contextlib import contextmanager
from typing import Iterator

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="display")

XVFB_BINARY = "Xvfb"


@contextmanager
def virtual_display(display: str = ":99", screen: str = "1280x1024x16") -> Iterator[str]:
    """Run Xvfb on `display` and point DISPLAY at it for the duration of the block."""
    cmd = [XVFB_BINARY, display, "-ac", "-screen", "0", screen]
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as exc:
        raise RuntimeError(f"Failed to start {XVFB_BINARY} on {display}: {exc}") from exc

    logger.info("Started %s on %s (pid %s)", XVFB_BINARY, display, proc.pid)
    previous = os.environ.get("DISPLAY")
    os.environ["DISPLAY"] = display
    try:
        yield display
    finally:
        if previous is None:
            os.environ.pop("DISPLAY", None)
        else:
            os.environ["DISPLAY"] = previous
        proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
        logger.info("Stopped %s on %s", XVFB_BINARY, display)
