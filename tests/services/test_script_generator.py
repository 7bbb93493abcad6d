import pytest
from jinja2 import DictLoader, Environment

from windowsdomain.constants import GUEST_RUNNER_PATH
from windowsdomain.errors import TemplateRenderError
from windowsdomain.models import DomainConfig
from windowsdomain.services.script_generator import ScriptGenerator, ps_quote


def _config(**overrides) -> DomainConfig:
    values = {
        "domain": "EXAMPLE",
        "computer_name": "WIN1",
        "username": "u",
        "password": "p",
    }
    values.update(overrides)
    return DomainConfig(**values)


@pytest.mark.parametrize("add_to_domain", [True, False])
def test_generate_is_deterministic(add_to_domain):
    generator = ScriptGenerator()

    first = generator.generate(_config(), add_to_domain=add_to_domain)
    second = ScriptGenerator().generate(_config(), add_to_domain=add_to_domain)

    assert first == second


def test_generate_join_script_adds_computer_to_domain():
    script = ScriptGenerator().generate(_config(), add_to_domain=True)

    assert "Add-Computer -DomainName 'EXAMPLE'" in script
    assert "-NewName 'WIN1'" in script
    assert "PSCredential ('u', $securePassword)" in script
    assert "Remove-Computer" not in script


def test_generate_leave_script_removes_computer_from_domain():
    script = ScriptGenerator().generate(_config(), add_to_domain=False)

    assert "Remove-Computer -UnjoinDomainCredential $credential" in script
    assert "Add-Computer" not in script


def test_generate_escapes_single_quotes_in_credentials():
    script = ScriptGenerator().generate(_config(password="pa'ss"), add_to_domain=True)

    assert "ConvertTo-SecureString 'pa''ss' -AsPlainText -Force" in script


def test_generate_ignores_join_options():
    config = _config(join_options=(("-OUPath", "OU=Servers,DC=example,DC=com"),))

    script = ScriptGenerator().generate(config, add_to_domain=True)

    assert "OU=Servers" not in script
    assert "-OUPath" not in script


def test_generate_raises_when_template_is_missing():
    generator = ScriptGenerator(environment=Environment(loader=DictLoader({})))

    with pytest.raises(TemplateRenderError, match="runner.ps1.j2"):
        generator.generate(_config(), add_to_domain=True)


def test_build_artifact_targets_fixed_guest_path():
    artifact = ScriptGenerator().build_artifact(_config(), add_to_domain=True)

    assert artifact.guest_path == GUEST_RUNNER_PATH
    assert "Add-Computer" in artifact.content


def test_ps_quote_handles_none():
    assert ps_quote(None) == "''"
    assert ps_quote("it's") == "'it''s'"
