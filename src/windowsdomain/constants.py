"""Process-wide constants for windowsdomain."""

# Transient runner script location on the guest, overwritten on every run.
GUEST_RUNNER_PATH = "c:/tmp/vagrant-windows-domain-runner.ps1"

REQUIRED_BINARIES = ("Add-Computer", "Remove-Computer")

WINDOWS_COMMUNICATOR = "winrm"
GUEST_SHELL = "powershell"

READY_POLL_INTERVAL_SECONDS = 10

DEFAULT_CONFIG_FILENAME = ".windowsdomain.yml"
