"""Guest platform and capability checks for windowsdomain."""

from typing import Iterable

from windowsdomain.constants import GUEST_SHELL, REQUIRED_BINARIES, WINDOWS_COMMUNICATOR
from windowsdomain.errors import BinaryNotDetectedError, UnsupportedPlatformError
from windowsdomain.models import GuestHandle


class CapabilityChecker:
    """Fails fast when the guest cannot run the domain membership cmdlets.

    Binaries are probed one at a time in the given order and the first
    missing one is reported; the remaining ones are not probed.
    """

    def __init__(self, logger):
        self.logger = logger

    def ensure_windows(self, guest: GuestHandle) -> None:
        communicator = getattr(guest, "communicator", None)
        if communicator != WINDOWS_COMMUNICATOR:
            raise UnsupportedPlatformError(communicator=str(communicator))

    def verify(
        self,
        guest: GuestHandle,
        domain: str,
        binaries: Iterable[str] = REQUIRED_BINARIES,
    ) -> None:
        for binary in binaries:
            self.verify_binary(guest, domain, binary)

    def verify_binary(self, guest: GuestHandle, domain: str, binary: str) -> None:
        self.logger.debug("Checking guest for command: %s", binary)
        exit_code = guest.sudo(
            f"Get-Command -Name '{binary}' -ErrorAction Stop | Out-Null",
            elevated=True,
            good_exit=0,
            shell=GUEST_SHELL,
        )
        if exit_code != 0:
            raise BinaryNotDetectedError(domain=domain, binary=binary)
