#!/usr/bin/env python3
"""Real-world demo: SwitcherHost with a few virtual scene switchers.

This script runs a :class:`SwitcherHost` on a real asyncio event loop
and drives its switchers the way physical buttons and automations
would.  Every outbound event is logged, so the engine's behaviour can
be followed live.

  **Phase 1: Fresh start**

  1. Create a SwitcherHost backed by a YAML state file.
  2. Add three switchers:

     - ``hall``: 4 circular scenes, dashboard button in
       ``smartNextPrev`` mode.
     - ``porch``: 5 linear scenes used for multi-tap emulation.
     - ``garden``: 6 linear-reversing scenes with a **long**
       auto-cycle delay (1 minute), which makes the auto-cycle
       survive a restart.

  3. Start a background task that mocks button presses on ``hall``
     and tap bursts on ``porch``, including a side effect sent right
     after an activation (it must be suppressed).
  4. Start the long auto-cycle on ``garden``.
  5. Wait for the user to press Enter, then shut down.  Auto-save has
     already persisted the state; the auto-cycle backup is kept.

  **Phase 2: Restart from persistence**

  1. Spin up a new SwitcherHost from the auto-persisted YAML.
  2. Re-add the switchers and verify that scenes, presets and the
     pending ``garden`` auto-cycle were restored.
  3. Wait for the user to press Enter.

  **Phase 3: Removal & cleanup**

  1. Remove all switchers (this drops the auto-cycle backup).
  2. Delete all persistence artefacts.

Run from the project root::

    python examples/realworld_test_switcher_host.py
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure the package is importable when running from the repo root.
# ---------------------------------------------------------------------------
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from pySceneSwitcher import (  # noqa: E402
    AutoCycleStatusEvent,
    SceneEvent,
    SwitcherHost,
)
from pySceneSwitcher.autocycle import BACKUP_FIELD  # noqa: E402

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

#: Persistence file (separate from any real installation).
STATE_FILE = Path("/tmp/pySceneSwitcher_demo_state.yaml")

#: Interval (seconds) between mock button interactions.
MOCK_INTERACTION_INTERVAL = 2.0

SWITCHERS = {
    "hall": {
        "scenesCount": 4,
        "dashboardMode": "smartNextPrev",
    },
    "porch": {
        "scenesCount": 5,
        "cycleMode": "linear",
        "multiTapDelayMillis": 600,
    },
    "garden": {
        "scenesCount": 6,
        "cycleMode": "linearReversing",
        "autocycleLongDelayMinutes": 1,
        "autocycleStartingScene": "initial",
        "autocycleMaxLoops": 2,
    },
}

# ---------------------------------------------------------------------------
# Logging: colourful, timestamped, to stdout
# ---------------------------------------------------------------------------

BOLD = "\033[1m"
GREEN = "\033[32m"
CYAN = "\033[36m"
YELLOW = "\033[33m"
RED = "\033[31m"
MAGENTA = "\033[35m"
RESET = "\033[0m"


class ColourFormatter(logging.Formatter):
    LEVEL_COLOURS = {
        logging.DEBUG: CYAN,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: RED + BOLD,
    }

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno, "")
        ts = self.formatTime(record, "%H:%M:%S")
        return (
            f"{BOLD}{ts}{RESET} "
            f"{colour}{record.levelname:<8s}{RESET} "
            f"{record.name}: {record.getMessage()}"
        )


def setup_logging() -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColourFormatter())
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    root.addHandler(handler)


# ---------------------------------------------------------------------------
# Event sink: logs everything the switchers emit
# ---------------------------------------------------------------------------

async def on_event(event) -> None:
    """Log scene and auto-cycle status events."""
    log = logging.getLogger("demo.events")
    if isinstance(event, SceneEvent):
        log.info(
            "%s[%s]%s scene %s%d%s%s",
            MAGENTA,
            event.entity_id,
            RESET,
            BOLD,
            event.value,
            RESET,
            "" if event.state_change else " (initial, no state change)",
        )
    elif isinstance(event, AutoCycleStatusEvent):
        log.info(
            "%s[%s]%s auto-cycle %s",
            MAGENTA,
            event.entity_id,
            RESET,
            event.status.value,
        )


async def wait_for_user(prompt: str) -> None:
    """Wait for the user to press Enter without blocking the event loop."""
    loop = asyncio.get_event_loop()
    print()
    print(f"{BOLD}{YELLOW}{prompt}{RESET}")
    await loop.run_in_executor(None, sys.stdin.readline)


def banner(text: str) -> None:
    """Print a prominent banner to the console."""
    width = 60
    print()
    print(f"{BOLD}{CYAN}{'=' * width}{RESET}")
    print(f"{BOLD}{CYAN} {text.center(width - 2)} {RESET}")
    print(f"{BOLD}{CYAN}{'=' * width}{RESET}")
    print()


# ---------------------------------------------------------------------------
# Mock button interaction simulator
# ---------------------------------------------------------------------------

class MockButtonSimulator:
    """Simulate button interactions in the background.

    Cycles through a fixed script of interactions:

    * dashboard presses on ``hall`` (smart next/previous),
    * a preset followed by ``recall`` on ``hall``,
    * a targeted scene on ``hall`` immediately followed by a mirrored
      side effect (suppressed),
    * a three-tap burst on ``porch``.
    """

    def __init__(self, host: SwitcherHost) -> None:
        self._host = host
        self._task = None
        self._log = logging.getLogger("demo.simulator")

    def start(self) -> None:
        self._task = asyncio.ensure_future(self._run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        step = 0
        while True:
            await asyncio.sleep(MOCK_INTERACTION_INTERVAL)
            step += 1
            phase = step % 4
            if phase == 1:
                self._log.info("hall: dashboard press")
                self._host.dispatch("hall", "mainAction")
            elif phase == 2:
                self._log.info("hall: preset scene 3, then recall")
                self._host.dispatch("hall", "-3")
                self._host.dispatch("hall", "recall")
            elif phase == 3:
                self._log.info("hall: scene 2, then a mirrored side effect")
                self._host.dispatch("hall", "2")
                executed = self._host.dispatch("hall", "4")
                self._log.info(
                    "hall: side effect %s",
                    "suppressed" if executed is None else "executed",
                )
            else:
                self._log.info("porch: triple tap")
                self._host.dispatch("porch", "doubleTap")
                await asyncio.sleep(0.2)
                self._host.dispatch("porch", "tap")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

async def main() -> None:
    setup_logging()
    logger = logging.getLogger("demo")

    # Start from a clean slate.
    for p in (STATE_FILE, STATE_FILE.with_suffix(STATE_FILE.suffix + ".bak")):
        p.unlink(missing_ok=True)

    # ==================================================================
    # Phase 1: Fresh start
    # ==================================================================
    banner("PHASE 1: FRESH START")

    host = SwitcherHost(state_path=STATE_FILE, on_event=on_event)
    for entity_id, prefs in SWITCHERS.items():
        host.add_switcher(entity_id, prefs)
    logger.info("Host ready with %d switchers", host.count)

    host.dispatch("garden", "autoForwards")
    garden = host.get_switcher("garden")
    logger.info(
        "garden: auto-cycle running=%s, backup=%r",
        garden.scheduler.is_running,
        garden.store.get(BACKUP_FIELD),
    )

    simulator = MockButtonSimulator(host)
    simulator.start()

    await wait_for_user("Press Enter to shut down and restart from disk...")
    await simulator.stop()
    host.shutdown()
    assert STATE_FILE.is_file(), "Auto-save did not write the state file"
    logger.info("State persisted to %s", STATE_FILE)

    expected = {
        entity_id: host.get_switcher(entity_id).current_scene
        for entity_id in SWITCHERS
    }

    # ==================================================================
    # Phase 2: Restart from persistence
    # ==================================================================
    banner("PHASE 2: RESTART FROM PERSISTENCE")

    host2 = SwitcherHost(state_path=STATE_FILE, on_event=on_event)
    for entity_id, prefs in SWITCHERS.items():
        host2.add_switcher(entity_id, prefs)

    for entity_id, scene in expected.items():
        restored = host2.get_switcher(entity_id).current_scene
        assert restored == scene, (
            f"{entity_id}: expected scene {scene}, restored {restored}"
        )
        logger.info("%s: restored at scene %d", entity_id, restored)

    garden2 = host2.get_switcher("garden")
    run = garden2.scheduler.pending_run
    if run is not None:
        logger.info(
            "garden: auto-cycle resumed, next scene %d (direction %+d)",
            run.target_scene,
            run.direction,
        )
    else:
        logger.warning("garden: auto-cycle was not resumed (backup expired?)")

    simulator = MockButtonSimulator(host2)
    simulator.start()
    await wait_for_user("Press Enter to remove all switchers and clean up...")
    await simulator.stop()

    # ==================================================================
    # Phase 3: Removal & cleanup
    # ==================================================================
    banner("PHASE 3: REMOVAL & CLEANUP")

    for entity_id in SWITCHERS:
        host2.remove_switcher(entity_id)
    host2.save()
    logger.info("All switchers removed, %d left", host2.count)

    if host2._store is not None:
        host2._store.delete()
        logger.info("Persistence files deleted: %s", STATE_FILE)

    assert not STATE_FILE.exists(), f"{STATE_FILE} still exists!"
    bak = STATE_FILE.with_suffix(STATE_FILE.suffix + ".bak")
    assert not bak.exists(), f"{bak} still exists!"
    logger.info("Cleanup verified: no leftover files.")

    banner("DEMO COMPLETE")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print(f"\n{YELLOW}Interrupted by user.{RESET}")
