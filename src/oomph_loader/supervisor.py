"""Process supervisor for the proxy binary.

Lifecycle:
1. Spawn the cached binary with our stdio, environment and working directory
2. Wait for whichever comes first: the child exiting, or SIGINT/SIGTERM
3. On a signal, interrupt the child and give it a grace period to exit
4. If it is still running when the grace period ends, kill it

Exactly one child is supervised per instance, and only the supervisor
signals or waits on it.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from oomph_loader.constants import SHUTDOWN_GRACE_SECONDS
from oomph_loader.errors import SignalDeliveryError, SpawnError
from oomph_loader.logging import get_logger

log = get_logger("oomph_loader.supervisor")

HOST_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)

if sys.platform == "win32":
    CHILD_INTERRUPT = signal.CTRL_BREAK_EVENT
else:
    CHILD_INTERRUPT = signal.SIGINT


class SupervisorState(StrEnum):
    """Lifecycle of the supervised process."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    INTERRUPT_REQUESTED = "interrupt_requested"
    EXITED_NORMALLY = "exited_normally"
    GRACEFULLY_STOPPED = "gracefully_stopped"
    FORCE_KILLED = "force_killed"


TERMINAL_STATES = frozenset(
    {
        SupervisorState.EXITED_NORMALLY,
        SupervisorState.GRACEFULLY_STOPPED,
        SupervisorState.FORCE_KILLED,
    }
)


@dataclass
class SupervisorResult:
    """Final disposition of a supervised run."""

    state: SupervisorState
    exit_code: int | None = None
    duration_seconds: float = 0.0

    @property
    def abnormal(self) -> bool:
        """True if the child was killed or exited on its own with a non-zero code."""
        if self.state == SupervisorState.FORCE_KILLED:
            return True
        return self.state == SupervisorState.EXITED_NORMALLY and self.exit_code != 0

    def describe(self) -> str:
        if self.state == SupervisorState.EXITED_NORMALLY:
            if self.exit_code == 0:
                return "proxy stopped successfully"
            return f"proxy exited with status {self.exit_code}"
        if self.state == SupervisorState.GRACEFULLY_STOPPED:
            return "proxy stopped after interrupt"
        if self.state == SupervisorState.FORCE_KILLED:
            return "proxy did not stop in time and was forcefully terminated"
        return f"proxy supervision ended in state {self.state}"


def working_directory() -> str:
    try:
        return os.getcwd()
    except OSError:
        return "."


class ProcessSupervisor:
    """Runs one binary as a child and turns host signals into a bounded shutdown."""

    def __init__(
        self,
        binary_path: str | Path,
        grace_seconds: float = SHUTDOWN_GRACE_SECONDS,
    ) -> None:
        self._binary_path = str(binary_path)
        self._grace_seconds = grace_seconds
        self._state = SupervisorState.NOT_STARTED
        self._shutdown = asyncio.Event()
        self._received_signal: signal.Signals | None = None
        self._installed: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, object] = {}

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def received_signal(self) -> signal.Signals | None:
        return self._received_signal

    def request_shutdown(self, sig: signal.Signals = signal.SIGINT) -> None:
        """Record a host shutdown request; the first one wins."""
        if self._shutdown.is_set():
            return
        self._received_signal = sig
        self._shutdown.set()

    async def run(self) -> SupervisorResult:
        """Start the binary and supervise it until it is gone.

        Raises SpawnError if the binary cannot be started.
        """
        start = time.monotonic()
        process = await self._spawn()
        self._state = SupervisorState.RUNNING
        log.info("proxy_started", pid=process.pid, path=self._binary_path)

        self._install_signal_handlers()
        exit_task = asyncio.create_task(process.wait())
        shutdown_task = asyncio.create_task(self._shutdown.wait())
        try:
            done, _ = await asyncio.wait(
                {exit_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if exit_task in done:
                self._state = SupervisorState.EXITED_NORMALLY
                exit_code = exit_task.result()
            else:
                exit_code = await self._stop(process, exit_task)
        finally:
            shutdown_task.cancel()
            self._remove_signal_handlers()

        result = SupervisorResult(
            state=self._state,
            exit_code=exit_code,
            duration_seconds=round(time.monotonic() - start, 2),
        )
        if result.abnormal:
            log.warning("proxy_finished", outcome=result.describe(), exit_code=exit_code)
        else:
            log.info("proxy_finished", outcome=result.describe(), exit_code=exit_code)
        return result

    async def _spawn(self) -> asyncio.subprocess.Process:
        kwargs: dict[str, object] = {}
        if sys.platform == "win32":
            # Needed so CTRL_BREAK_EVENT reaches only the child.
            kwargs["creationflags"] = 0x00000200  # CREATE_NEW_PROCESS_GROUP
        try:
            return await asyncio.create_subprocess_exec(
                self._binary_path,
                stdin=None,
                stdout=None,
                stderr=None,
                env=dict(os.environ),
                cwd=working_directory(),
                **kwargs,
            )
        except OSError as exc:
            raise SpawnError(self._binary_path, str(exc)) from exc

    async def _stop(
        self,
        process: asyncio.subprocess.Process,
        exit_task: asyncio.Task[int],
    ) -> int | None:
        """Interrupt the child, wait out the grace period, kill if needed."""
        self._state = SupervisorState.INTERRUPT_REQUESTED
        sig_name = self._received_signal.name if self._received_signal else "unknown"
        log.info("shutdown_requested", signal=sig_name, grace_seconds=self._grace_seconds)

        try:
            self._interrupt(process)
        except SignalDeliveryError as exc:
            log.error("proxy_interrupt_failed", error=str(exc))
            # No acknowledgement can arrive; let the grace period run out.
            await asyncio.sleep(self._grace_seconds)
        else:
            try:
                exit_code = await asyncio.wait_for(
                    asyncio.shield(exit_task), timeout=self._grace_seconds
                )
            except TimeoutError:
                pass
            else:
                self._state = SupervisorState.GRACEFULLY_STOPPED
                return exit_code

        log.warning("proxy_stop_timeout", grace_seconds=self._grace_seconds)
        killed = self._kill(process)
        self._state = SupervisorState.FORCE_KILLED
        if not killed:
            # The child may outlive us; waiting on it would never return.
            exit_task.cancel()
            return None
        return await exit_task

    @staticmethod
    def _interrupt(process: asyncio.subprocess.Process) -> None:
        try:
            process.send_signal(CHILD_INTERRUPT)
        except (ProcessLookupError, OSError, ValueError) as exc:
            raise SignalDeliveryError(f"could not interrupt pid {process.pid}: {exc}") from exc

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> bool:
        """Kill the child. Returns False if the kill could not be delivered."""
        try:
            process.kill()
        except ProcessLookupError:
            log.info("proxy_already_exited", pid=process.pid)
        except OSError as exc:
            log.error("proxy_kill_failed", pid=process.pid, error=str(exc))
            return False
        else:
            log.warning("proxy_killed", pid=process.pid)
        return True

    # ------------------------------------------------------------------
    # Host signal relay
    # ------------------------------------------------------------------

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in HOST_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler.
                self._previous_handlers[sig] = signal.signal(
                    sig,
                    lambda signum, _frame: loop.call_soon_threadsafe(
                        self.request_shutdown, signal.Signals(signum)
                    ),
                )
            self._installed.append(sig)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed:
            if sig in self._previous_handlers:
                signal.signal(sig, self._previous_handlers.pop(sig))  # type: ignore[arg-type]
            else:
                loop.remove_signal_handler(sig)
        self._installed.clear()
