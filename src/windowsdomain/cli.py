import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILENAME
from .core import WindowsDomainError, WindowsDomainProvisioner
from .models import DomainConfig
from .services.config_loader import ConfigLoader
from .services.winrm_guest import WinRMGuest


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def common_options(func):
    options = [
        click.option(
            "--config",
            required=False,
            type=click.Path(),
            help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILENAME} if present.",
        ),
        click.option("--domain", required=False, help="Active Directory domain name"),
        click.option("--computer-name", required=False, help="Computer name inside the domain"),
        click.option("--username", required=False, help="Domain user allowed to change membership"),
        click.option(
            "--password",
            required=False,
            help="Domain password. Prompted with hidden input when omitted.",
        ),
        click.option("--host", required=False, help="Guest hostname or IP address"),
        click.option("--port", required=False, type=int, default=None, help="WinRM port"),
        click.option(
            "--transport",
            required=False,
            type=click.Choice(["ntlm", "basic", "kerberos", "credssp", "ssl"]),
            default=None,
            help="WinRM authentication transport (default: ntlm)",
        ),
        click.option("--guest-username", required=False, help="Local administrator on the guest"),
        click.option("--guest-password", required=False, help="Password of the guest administrator"),
        click.option("--ssl", is_flag=True, default=None, help="Connect to WinRM over HTTPS"),
        click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging"),
        click.option("--log-file", type=click.Path(), help="Path to log file"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _configure_logging(logger, verbose: bool, log_file):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _run_action(action: str, options: dict) -> int:
    logger = logging.getLogger("windowsdomain")

    try:
        config_loader = ConfigLoader()
        resolved_config = options.pop("config")
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILENAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except WindowsDomainError as exc:
        raise click.ClickException(str(exc)) from exc

    def value(key, default=None):
        return _resolve_option(options.get(key), config_values, key, default=default)

    domain = value("domain")
    computer_name = value("computer_name")
    host = value("host")
    verbose = bool(value("verbose", default=False))
    ssl = bool(value("ssl", default=False))

    if not domain:
        raise click.ClickException("Missing required option '--domain' (or provide it in config).")
    if not computer_name:
        raise click.ClickException(
            "Missing required option '--computer-name' (or provide it in config)."
        )
    if not host:
        raise click.ClickException("Missing required option '--host' (or provide it in config).")

    _configure_logging(logger, verbose, value("log_file"))

    domain_config = DomainConfig(
        domain=str(domain),
        computer_name=str(computer_name),
        username=value("username"),
        password=value("password"),
        join_options=config_values.get("join_options", ()),
    )

    guest_username = value("guest_username")
    if not guest_username:
        guest_username = click.prompt("Please enter the guest administrator username")
    guest_password = value("guest_password")
    if not guest_password:
        guest_password = click.prompt(
            "Please enter the guest administrator password (output will be hidden)",
            hide_input=True,
        )

    guest = WinRMGuest(
        host=str(host),
        username=guest_username,
        password=guest_password,
        port=int(value("port", default=5986 if ssl else 5985)),
        transport=value("transport", default="ntlm"),
        ssl=ssl,
        verify_ssl=bool(config_values.get("verify_ssl", True)),
        logger=logger,
    )

    provisioner = WindowsDomainProvisioner(config=domain_config, guest=guest, logger=logger)
    return provisioner.run(action)


@click.group()
def main():
    """Join Windows guests to an Active Directory domain and remove them again."""


@main.command()
@common_options
def provision(**options):
    """Join the guest to the domain and reboot it."""
    raise SystemExit(_run_action("provision", options))


@main.command()
@common_options
def cleanup(**options):
    """Remove the guest from the domain."""
    raise SystemExit(_run_action("cleanup", options))


if __name__ == "__main__":
    main()
