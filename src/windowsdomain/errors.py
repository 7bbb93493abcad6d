"""Domain errors for windowsdomain."""

from windowsdomain.errors_catalog import actionable_error


class WindowsDomainError(RuntimeError):
    """Raised when domain membership cannot be changed safely."""

    # Muted errors are reported as a short summary instead of aborting loudly.
    muted = False


class UnsupportedPlatformError(WindowsDomainError):
    """Raised when the guest is not reachable through a Windows communicator."""

    def __init__(self, communicator: str):
        self.communicator = communicator
        super().__init__(actionable_error("unsupported_platform", communicator=communicator))


class BinaryNotDetectedError(WindowsDomainError):
    def __init__(self, domain: str, binary: str):
        self.domain = domain
        self.binary = binary
        super().__init__(actionable_error("binary_not_detected", domain=domain, binary=binary))


class TemplateRenderError(WindowsDomainError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(actionable_error("template_render_failed", reason=reason))


class RemoteExecutionError(WindowsDomainError):
    """Raised when the runner script exits with a non-zero status."""

    muted = True

    def __init__(self, domain: str, exit_code: int):
        self.domain = domain
        self.exit_code = exit_code
        super().__init__(
            actionable_error("bad_exit_status_muted", domain=domain, exit_code=exit_code)
        )


class GuestTransportError(RuntimeError):
    """Raised by a guest transport when a transfer or probe fails.

    Not a ``WindowsDomainError``: transport failures pass through unchanged.
    """
