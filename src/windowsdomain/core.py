import enum
import logging
import time
from typing import Callable, Optional

import click
from rich.console import Console

from .constants import READY_POLL_INTERVAL_SECONDS, REQUIRED_BINARIES
from .errors import GuestTransportError, WindowsDomainError
from .errors_catalog import actionable_error
from .models import DomainConfig, GuestHandle, RunResult
from .services.capability import CapabilityChecker
from .services.credentials import CredentialResolver
from .services.remote_runner import RemoteRunner
from .services.script_generator import ScriptGenerator

console = Console()
logger = logging.getLogger("windowsdomain")


class WorkflowState(enum.Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    READY = "ready"
    CREDENTIALS_RESOLVED = "credentials_resolved"
    EXECUTING = "executing"
    JOINED = "joined"
    LEFT = "left"
    FAILED = "failed"


class WindowsDomainProvisioner:
    """Joins a guest machine to a Windows domain and removes it again.

    The guest handle is borrowed from the orchestrator; nothing is cached
    between calls except the resolved credentials.
    """

    ACTIONS = ("provision", "cleanup")

    def __init__(
        self,
        config: DomainConfig,
        guest: GuestHandle,
        logger: logging.Logger = logger,
        console: Console = console,
        prompt: Callable = click.prompt,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = READY_POLL_INTERVAL_SECONDS,
    ):
        self.config = config
        self.guest = guest
        self.logger = logger
        self.console = console
        self.sleep = sleep
        self.poll_interval = poll_interval

        self.state = WorkflowState.IDLE
        self.error: Optional[BaseException] = None
        self.configured = False

        self.capability_checker = CapabilityChecker(logger=logger)
        self.credential_resolver = CredentialResolver(logger=logger, prompt=prompt)
        self.script_generator = ScriptGenerator()
        self.remote_runner = RemoteRunner(logger=logger, console=console)

    def _transition(self, state: WorkflowState):
        self.logger.debug("Workflow state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, exc: BaseException):
        self.error = exc
        self._transition(WorkflowState.FAILED)

    def _require_configured(self, action: str):
        if not self.configured:
            raise WindowsDomainError(actionable_error("not_configured", action=action))

    def configure(self):
        """Checks the guest platform and the domain cmdlets before any prompt or upload."""
        self._transition(WorkflowState.CONFIGURING)
        self.configured = False
        try:
            self.capability_checker.ensure_windows(self.guest)
            self.capability_checker.verify(
                self.guest, domain=self.config.domain, binaries=REQUIRED_BINARIES
            )
        except Exception as exc:
            self._fail(exc)
            raise

        self.configured = True
        self._transition(WorkflowState.READY)

    def provision(self):
        self._require_configured("provision")
        self.console.print(
            f"[blue]Connecting guest machine to domain '{self.config.domain}' "
            f"with computer name '{self.config.computer_name}'[/blue]"
        )
        self.logger.info(
            "Joining domain %s as %s", self.config.domain, self.config.computer_name
        )
        try:
            self.set_credentials()
            self.join_domain()
            self._transition(WorkflowState.JOINED)
            self.restart_guest()
        except Exception as exc:
            self._fail(exc)
            raise

    def cleanup(self):
        """Removes the guest from the domain during machine teardown."""
        self._require_configured("cleanup")
        self.logger.info("Removing guest machine from domain %s", self.config.domain)
        try:
            self.set_credentials()
            self.leave_domain()
        except Exception as exc:
            self._fail(exc)
            raise
        self._transition(WorkflowState.LEFT)

    def set_credentials(self) -> DomainConfig:
        self.config = self.credential_resolver.resolve(self.config)
        self._transition(WorkflowState.CREDENTIALS_RESOLVED)
        return self.config

    def join_domain(self) -> RunResult:
        return self._run_runner_script(add_to_domain=True)

    def leave_domain(self) -> RunResult:
        return self._run_runner_script(add_to_domain=False)

    unjoin_domain = leave_domain

    def _run_runner_script(self, add_to_domain: bool) -> RunResult:
        artifact = self.script_generator.build_artifact(self.config, add_to_domain=add_to_domain)
        self._transition(WorkflowState.EXECUTING)
        return self.remote_runner.run(self.guest, artifact, domain=self.config.domain)

    def restart_guest(self):
        """Reboots the guest and waits for it to answer again.

        There is no upper bound on the wait; the loop ends only when the
        guest reports ready.
        """
        self.console.print("[blue]Restarting computer for updates to take effect.[/blue]")
        self.logger.info("Restarting guest machine")
        self.guest.reload({"provision_ignore_sentinel": False})

        attempts = 0
        while True:
            self.sleep(self.poll_interval)
            attempts += 1
            if self.guest.is_ready():
                break
            self.logger.debug("Guest not ready after %s checks", attempts)

        self.console.print("[green]Guest machine is back online.[/green]")
        self.logger.info("Guest ready after %s readiness checks", attempts)

    def run(self, action: str) -> int:
        """Configures then runs ``action``, returning a process exit code."""
        if action not in self.ACTIONS:
            raise ValueError(f"Unknown action: {action}")

        try:
            self.configure()
            getattr(self, action)()
            if action == "provision":
                self.console.print(f"[green]Joined domain '{self.config.domain}'.[/green]")
            else:
                self.console.print(f"[green]Left domain '{self.config.domain}'.[/green]")
            return 0

        except KeyboardInterrupt:
            self.console.print("[bold red]Operation cancelled by user.[/bold red]")
            self.logger.info("Operation cancelled by user")
            return 1
        except WindowsDomainError as exc:
            if exc.muted:
                self.console.print(f"[yellow]{exc}[/yellow]")
                self.logger.warning(str(exc))
            else:
                self.console.print(f"[bold red]Error:[/bold red] {exc}")
                self.logger.error(str(exc))
            return 1
        except GuestTransportError as exc:
            self.console.print(f"[bold red]Transport error:[/bold red] {exc}")
            self.logger.error(str(exc))
            return 1
        except Exception as exc:
            self.console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            self.logger.exception("Unexpected error")
            return 1
