"""Shared domain models for windowsdomain."""

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Protocol, Tuple

from windowsdomain.constants import GUEST_RUNNER_PATH, GUEST_SHELL

JoinOptions = Tuple[Tuple[str, Optional[str]], ...]
OutputCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class DomainConfig:
    """Target domain, computer name and the credentials used to change membership."""

    domain: str
    computer_name: str
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    # Carried for forward compatibility; never rendered into the runner script.
    join_options: JoinOptions = ()

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    def with_credentials(self, username: str, password: str) -> "DomainConfig":
        return replace(self, username=username, password=password)


@dataclass(frozen=True)
class ScriptArtifact:
    content: str
    guest_path: str = GUEST_RUNNER_PATH


@dataclass(frozen=True)
class OutputLine:
    channel: str
    text: str


@dataclass
class RunResult:
    exit_code: int
    lines: List[OutputLine] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class GuestHandle(Protocol):
    """Remote machine capability borrowed from the orchestrator for one operation."""

    communicator: str

    def upload(self, local_path: str, remote_path: str) -> None:
        ...

    def sudo(
        self,
        command: str,
        elevated: bool = True,
        good_exit: int = 0,
        shell: str = GUEST_SHELL,
        on_output: Optional[OutputCallback] = None,
    ) -> int:
        ...

    def is_ready(self) -> bool:
        ...

    def reload(self, options: dict) -> None:
        ...
