"""Upload and elevated execution of the runner script on the guest."""

import os
import tempfile
from typing import List

from windowsdomain.constants import GUEST_SHELL
from windowsdomain.errors import RemoteExecutionError
from windowsdomain.models import GuestHandle, OutputLine, RunResult, ScriptArtifact

CHANNEL_STYLES = {"stdout": "green", "stderr": "red"}


class RemoteRunner:
    """Copies the runner script to the guest and runs it with elevation."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def upload(self, guest: GuestHandle, artifact: ScriptArtifact) -> str:
        """Write the artifact content to a local temp file and transfer it to the guest.

        The local file is removed whether or not the transfer succeeds. The
        guest copy is left in place and overwritten by the next run.
        """
        file_obj = tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            prefix="vagrant-windows-domain-runner",
            suffix=".ps1",
            delete=False,
        )
        local_path = file_obj.name
        try:
            file_obj.write(artifact.content)
            file_obj.flush()
            os.fsync(file_obj.fileno())
            file_obj.close()
            self.logger.debug("Uploading runner script %s to %s", local_path, artifact.guest_path)
            guest.upload(local_path, artifact.guest_path)
        finally:
            file_obj.close()
            if os.path.exists(local_path):
                os.remove(local_path)
        return artifact.guest_path

    def execute(self, guest: GuestHandle, remote_path: str, domain: str) -> RunResult:
        command = f". '{remote_path}'"
        self.console.print("[blue]Running Windows Domain runner script on the guest...[/blue]")
        self.logger.debug("Executing: %s", command)

        lines: List[OutputLine] = []

        def relay(channel: str, data: str) -> None:
            style = CHANNEL_STYLES.get(channel)
            if style is None:
                return
            for raw_line in (data or "").splitlines():
                cleaned = raw_line.rstrip()
                if not cleaned:
                    continue
                lines.append(OutputLine(channel=channel, text=cleaned))
                self.logger.debug("[%s] %s", channel, cleaned)
                self.console.print(cleaned, style=style, markup=False, highlight=False)

        exit_code = guest.sudo(
            command,
            elevated=True,
            good_exit=0,
            shell=GUEST_SHELL,
            on_output=relay,
        )
        result = RunResult(exit_code=exit_code, lines=lines)

        if not result.succeeded:
            self.logger.warning(
                "Runner script for domain %s returned non-zero exit code: %s", domain, exit_code
            )
            raise RemoteExecutionError(domain=domain, exit_code=exit_code)

        return result

    def run(self, guest: GuestHandle, artifact: ScriptArtifact, domain: str) -> RunResult:
        remote_path = self.upload(guest, artifact)
        return self.execute(guest, remote_path, domain)
