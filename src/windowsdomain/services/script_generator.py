"""PowerShell runner script generation for windowsdomain."""

from typing import Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from windowsdomain.constants import GUEST_RUNNER_PATH
from windowsdomain.errors import TemplateRenderError
from windowsdomain.models import DomainConfig, ScriptArtifact


def ps_quote(value) -> str:
    """Render ``value`` as a single-quoted PowerShell string literal."""
    text = "" if value is None else str(value)
    return "'" + text.replace("'", "''") + "'"


class ScriptGenerator:
    """Renders the join/leave runner script from the packaged template."""

    TEMPLATE_NAME = "runner.ps1.j2"

    def __init__(self, environment: Optional[Environment] = None):
        if environment is None:
            try:
                environment = Environment(
                    loader=PackageLoader("windowsdomain", "templates"),
                    keep_trailing_newline=True,
                    undefined=StrictUndefined,
                )
            except ValueError as exc:
                raise TemplateRenderError(str(exc)) from exc
        environment.filters["ps_quote"] = ps_quote
        self.environment = environment

    def generate(self, config: DomainConfig, add_to_domain: bool = True) -> str:
        try:
            template = self.environment.get_template(self.TEMPLATE_NAME)
            return template.render(
                domain=config.domain,
                computer_name=config.computer_name,
                username=config.username,
                password=config.password,
                add_to_domain=add_to_domain,
            )
        except TemplateError as exc:
            raise TemplateRenderError(str(exc) or exc.__class__.__name__) from exc

    def build_artifact(self, config: DomainConfig, add_to_domain: bool = True) -> ScriptArtifact:
        return ScriptArtifact(
            content=self.generate(config, add_to_domain=add_to_domain),
            guest_path=GUEST_RUNNER_PATH,
        )
