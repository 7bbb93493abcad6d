"""Actionable error catalog for windowsdomain."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "unsupported_platform": {
        "what": "Unsupported platform: the guest communicator is '{communicator}', not WinRM.",
        "next": "Domain membership can only be managed on Windows guests reachable over WinRM.",
    },
    "binary_not_detected": {
        "what": "Cannot manage membership of domain '{domain}': '{binary}' was not found on the guest.",
        "next": "Use a Windows image that ships the PowerShell management cmdlets.",
    },
    "template_render_failed": {
        "what": "Could not render the domain runner script template: {reason}",
        "next": "Reinstall windowsdomain; the packaged templates are missing or broken.",
    },
    "bad_exit_status_muted": {
        "what": "Domain script for '{domain}' exited with status {exit_code}.",
        "next": "Review the guest output above and check the domain credentials.",
    },
    "not_configured": {
        "what": "Cannot run '{action}' before the provisioner was configured successfully.",
        "next": "Run configure first and resolve any errors it reports.",
    },
}


def actionable_error(code: str, **kwargs) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
