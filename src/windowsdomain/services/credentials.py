"""Interactive domain credential resolution."""

import click

from windowsdomain.models import DomainConfig

USERNAME_PROMPT = "Please enter your domain username"
PASSWORD_PROMPT = "Please enter your domain password (output will be hidden)"


class CredentialResolver:
    """Prompts for whichever domain credentials the configuration lacks."""

    def __init__(self, logger, prompt=click.prompt):
        self.logger = logger
        self.prompt = prompt

    def resolve(self, config: DomainConfig) -> DomainConfig:
        if config.has_credentials:
            return config

        username = config.username
        password = config.password

        if not username:
            self.logger.info("Requesting domain username as none was provided")
            username = self.prompt(USERNAME_PROMPT, hide_input=False)

        if not password:
            self.logger.info("Requesting domain password as none was provided")
            password = self.prompt(PASSWORD_PROMPT, hide_input=True)

        return config.with_credentials(username=username, password=password)
