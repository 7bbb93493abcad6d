import os

import pytest

from windowsdomain.constants import GUEST_RUNNER_PATH
from windowsdomain.errors import RemoteExecutionError
from windowsdomain.models import OutputLine, ScriptArtifact
from windowsdomain.services.remote_runner import RemoteRunner


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class RecordingConsole:
    def __init__(self):
        self.calls = []

    def print(self, *args, **kwargs):
        self.calls.append((args, kwargs))


class FakeGuest:
    communicator = "winrm"

    def __init__(self, exit_code=0, chunks=(), upload_error=None):
        self.exit_code = exit_code
        self.chunks = list(chunks)
        self.upload_error = upload_error
        self.uploads = []
        self.commands = []

    def upload(self, local_path, remote_path):
        with open(local_path, "r", encoding="utf-8") as file_obj:
            content = file_obj.read()
        self.uploads.append((local_path, remote_path, content))
        if self.upload_error:
            raise self.upload_error

    def sudo(self, command, on_output=None, **kwargs):
        self.commands.append((command, kwargs))
        for channel, data in self.chunks:
            on_output(channel, data)
        return self.exit_code


def _runner(console=None) -> RemoteRunner:
    return RemoteRunner(logger=DummyLogger(), console=console or RecordingConsole())


def test_upload_transfers_script_and_removes_local_file():
    guest = FakeGuest()

    remote_path = _runner().upload(guest, ScriptArtifact(content="Write-Output 'hi'"))

    assert remote_path == GUEST_RUNNER_PATH
    local_path, uploaded_to, content = guest.uploads[0]
    assert uploaded_to == GUEST_RUNNER_PATH
    assert content == "Write-Output 'hi'"
    assert local_path.endswith(".ps1")
    assert not os.path.exists(local_path)


def test_upload_removes_local_file_when_transfer_fails():
    guest = FakeGuest(upload_error=ConnectionError("transfer failed"))

    with pytest.raises(ConnectionError, match="transfer failed"):
        _runner().upload(guest, ScriptArtifact(content="Write-Output 'hi'"))

    local_path = guest.uploads[0][0]
    assert not os.path.exists(local_path)


def test_execute_runs_script_elevated_and_relays_output():
    console = RecordingConsole()
    guest = FakeGuest(chunks=[("stdout", "joined\r\n\r\n"), ("stderr", "warning\n")])

    result = _runner(console).execute(guest, GUEST_RUNNER_PATH, domain="EXAMPLE")

    command, kwargs = guest.commands[0]
    assert command == f". '{GUEST_RUNNER_PATH}'"
    assert kwargs == {"elevated": True, "good_exit": 0, "shell": "powershell"}
    assert result.succeeded
    assert result.lines == [
        OutputLine(channel="stdout", text="joined"),
        OutputLine(channel="stderr", text="warning"),
    ]
    relayed = [(args[0], kwargs.get("style")) for args, kwargs in console.calls if "style" in kwargs]
    assert relayed == [("joined", "green"), ("warning", "red")]


def test_execute_suppresses_empty_lines():
    guest = FakeGuest(chunks=[("stdout", "\n   \n"), ("stderr", "")])

    result = _runner().execute(guest, GUEST_RUNNER_PATH, domain="EXAMPLE")

    assert result.lines == []


def test_execute_delivers_lines_before_returning():
    console = RecordingConsole()
    seen_during_call = []

    class StreamingGuest(FakeGuest):
        def sudo(self, command, on_output=None, **kwargs):
            on_output("stdout", "first\n")
            seen_during_call.append(len(console.calls))
            on_output("stdout", "second\n")
            seen_during_call.append(len(console.calls))
            return 0

    _runner(console).execute(StreamingGuest(), GUEST_RUNNER_PATH, domain="EXAMPLE")

    # One banner line, then each relayed line as it arrives.
    assert seen_during_call == [2, 3]


@pytest.mark.parametrize("exit_code", [1, 2, 1603])
def test_execute_raises_muted_error_on_bad_exit(exit_code):
    guest = FakeGuest(exit_code=exit_code)

    with pytest.raises(RemoteExecutionError) as exc_info:
        _runner().execute(guest, GUEST_RUNNER_PATH, domain="EXAMPLE")

    assert exc_info.value.exit_code == exit_code
    assert exc_info.value.domain == "EXAMPLE"
    assert exc_info.value.muted is True


def test_run_uploads_then_executes():
    guest = FakeGuest(chunks=[("stdout", "ok\n")])

    result = _runner().run(guest, ScriptArtifact(content="script body"), domain="EXAMPLE")

    assert guest.uploads[0][2] == "script body"
    assert guest.commands[0][0] == f". '{GUEST_RUNNER_PATH}'"
    assert result.exit_code == 0


def test_upload_sends_script_to_artifact_guest_path():
    guest = FakeGuest()
    artifact = ScriptArtifact(content="Write-Output 'hi'", guest_path="c:/other/runner.ps1")

    remote_path = _runner().upload(guest, artifact)

    assert remote_path == "c:/other/runner.ps1"
    assert guest.uploads[0][1] == "c:/other/runner.ps1"
