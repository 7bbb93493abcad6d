"""WinRM guest transport built on pywinrm."""

import base64
import codecs
import logging
import os
from typing import Optional

import requests
import winrm
from winrm.exceptions import WinRMError, WinRMOperationTimeoutError, WinRMTransportError

from windowsdomain.constants import GUEST_SHELL, WINDOWS_COMMUNICATOR
from windowsdomain.errors import GuestTransportError
from windowsdomain.models import OutputCallback

logger = logging.getLogger("windowsdomain")

POWERSHELL_ARGS = ("-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-EncodedCommand")


def encode_powershell(script: str) -> str:
    return base64.b64encode(script.encode("utf_16_le")).decode("ascii")


class WinRMGuest:
    """Guest handle speaking WinRM to a Windows machine.

    WinRM sessions run with the full token of the connecting administrator,
    so elevated commands need no extra wrapping.
    """

    communicator = WINDOWS_COMMUNICATOR
    UPLOAD_CHUNK_BYTES = 1024
    BOOT_TIME_SCRIPT = (
        "(Get-CimInstance -ClassName Win32_OperatingSystem)"
        ".LastBootUpTime.ToUniversalTime().ToString('o')"
    )
    READY_PROBE_ERRORS = (
        WinRMError,
        WinRMTransportError,
        requests.exceptions.RequestException,
    )

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = 5985,
        transport: str = "ntlm",
        ssl: bool = False,
        verify_ssl: bool = True,
        logger=logger,
        session_factory=winrm.Session,
    ):
        self.host = host
        self.port = port
        self.logger = logger
        self._boot_time_before_reload: Optional[str] = None
        scheme = "https" if ssl else "http"
        self.endpoint = f"{scheme}://{host}:{port}/wsman"
        self.session = session_factory(
            self.endpoint,
            auth=(username, password),
            transport=transport,
            server_cert_validation="validate" if verify_ssl else "ignore",
        )

    def sudo(
        self,
        command: str,
        elevated: bool = True,
        good_exit: int = 0,
        shell: str = GUEST_SHELL,
        on_output: Optional[OutputCallback] = None,
    ) -> int:
        protocol = self.session.protocol
        if shell == GUEST_SHELL:
            executable, arguments = "powershell", POWERSHELL_ARGS + (encode_powershell(command),)
        else:
            executable, arguments = command, ()

        self.logger.debug("Running on %s (elevated=%s): %s", self.host, elevated, command)
        shell_id = protocol.open_shell()
        try:
            command_id = protocol.run_command(shell_id, executable, arguments)
            try:
                exit_code = self._stream_output(protocol, shell_id, command_id, on_output)
            finally:
                protocol.cleanup_command(shell_id, command_id)
        finally:
            protocol.close_shell(shell_id)

        if exit_code != good_exit:
            self.logger.debug("Command on %s exited with %s", self.host, exit_code)
        return exit_code

    @staticmethod
    def _stream_output(protocol, shell_id, command_id, on_output) -> int:
        # One decoder per stream so multi-byte characters may span chunks.
        decoders = {
            "stdout": codecs.getincrementaldecoder("utf-8")(errors="replace"),
            "stderr": codecs.getincrementaldecoder("utf-8")(errors="replace"),
        }
        exit_code = -1
        command_done = False
        while not command_done:
            try:
                stdout, stderr, exit_code, command_done = protocol.get_command_output_raw(
                    shell_id, command_id
                )
            except WinRMOperationTimeoutError:
                # No output within the operation timeout; keep polling.
                continue
            if on_output is None:
                continue
            for channel, data in (("stdout", stdout), ("stderr", stderr)):
                text = decoders[channel].decode(data or b"", final=command_done)
                if text:
                    on_output(channel, text)
        return exit_code

    def upload(self, local_path: str, remote_path: str) -> None:
        remote_path = remote_path.replace("/", "\\")
        remote_literal = "'" + remote_path.replace("'", "''") + "'"
        self.logger.debug("Uploading %s to %s:%s", local_path, self.host, remote_path)

        prepare = (
            f"$path = {remote_literal}; "
            "New-Item -ItemType Directory -Force -Path (Split-Path -Parent $path) | Out-Null; "
            "[IO.File]::WriteAllBytes($path, [byte[]]@())"
        )
        self._run_upload_step(prepare, remote_path)

        with open(local_path, "rb") as file_obj:
            while True:
                chunk = file_obj.read(self.UPLOAD_CHUNK_BYTES)
                if not chunk:
                    break
                payload = base64.b64encode(chunk).decode("ascii")
                append = (
                    f"$bytes = [Convert]::FromBase64String('{payload}'); "
                    f"$stream = [IO.File]::Open({remote_literal}, 'Append'); "
                    "try { $stream.Write($bytes, 0, $bytes.Length) } finally { $stream.Close() }"
                )
                self._run_upload_step(append, remote_path)

        self.logger.debug("Uploaded %s bytes to %s", os.path.getsize(local_path), remote_path)

    def _run_upload_step(self, script: str, remote_path: str) -> None:
        response = self.session.run_ps(script)
        if response.status_code != 0:
            stderr = (response.std_err or b"").decode("utf-8", errors="replace").strip()
            message = f"Upload to {self.host}:{remote_path} failed ({response.status_code})"
            if stderr:
                message = f"{message}\n{stderr}"
            raise GuestTransportError(message)

    def is_ready(self) -> bool:
        """True once WinRM answers and, after ``reload``, the guest has booted again."""
        if self._boot_time_before_reload is not None:
            boot_time = self._read_boot_time()
            if boot_time is None:
                return False
            if boot_time == self._boot_time_before_reload:
                self.logger.debug("Guest %s has not restarted yet", self.host)
                return False
            self._boot_time_before_reload = None
            return True

        try:
            response = self.session.run_cmd("hostname")
        except self.READY_PROBE_ERRORS as exc:
            self.logger.debug("Guest %s is not ready yet: %s", self.host, exc)
            return False
        return response.status_code == 0

    def _read_boot_time(self) -> Optional[str]:
        try:
            response = self.session.run_ps(self.BOOT_TIME_SCRIPT)
        except self.READY_PROBE_ERRORS as exc:
            self.logger.debug("Could not read boot time of %s: %s", self.host, exc)
            return None
        if response.status_code != 0:
            return None
        boot_time = (response.std_out or b"").decode("utf-8", errors="replace").strip()
        return boot_time or None

    def reload(self, options: dict) -> None:
        self.logger.debug("Restarting guest %s with options %s", self.host, options)
        self._boot_time_before_reload = self._read_boot_time()
        if self._boot_time_before_reload is None:
            self.logger.warning(
                "Boot time of %s is unknown; readiness only checks that WinRM answers.",
                self.host,
            )
        try:
            self.session.run_ps("Restart-Computer -Force")
        except self.READY_PROBE_ERRORS as exc:
            # The guest may drop the connection while it goes down.
            self.logger.debug("Connection to %s closed during restart: %s", self.host, exc)
