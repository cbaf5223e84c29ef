"""Root pytest configuration for all tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillpack.config import Config, reset_config
from tests.utils import (
    CDK_DESCRIPTION,
    CFN_DESCRIPTION,
    COMPONENT_DESCRIPTION,
    ESC_DESCRIPTION,
    write_skill,
)

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user/system config and env overrides out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in ("SKILLPACK_LOG", "SKILLPACK_ROOTS", "SKILLPACK_BUDGET"):
        monkeypatch.delenv(var, raising=False)
    reset_config()


@pytest.fixture
def skill_root(tmp_path: Path) -> Path:
    """A plugins directory with two plugin groups and four skills.

    pulumi-migration/skills/
        cloudformation-to-pulumi   (ts variant, references pulumi-esc)
        pulumi-cdk-to-pulumi       (ts variant, references pulumi-component
                                    and a skill that does not exist)
    pulumi-authoring/skills/
        pulumi-component           (ts + go variants, one reference file)
        pulumi-esc                 (ts + python variants)
    """
    root = tmp_path / "plugins"

    migration = root / "pulumi-migration" / "skills"
    write_skill(
        migration,
        "cloudformation-to-pulumi",
        CFN_DESCRIPTION,
        body=(
            "# CloudFormation to Pulumi\n\n"
            "Import the existing stack resources, then convert templates one at a time.\n\n"
            "For stack secrets, use the `pulumi-esc` skill."
        ),
        variants={"ts": "```ts\nconst bucket = new aws.s3.Bucket(\"b\");\n```"},
    )
    write_skill(
        migration,
        "pulumi-cdk-to-pulumi",
        CDK_DESCRIPTION,
        body=(
            "# CDK to Pulumi\n\n"
            "Use skill `pulumi-component` to structure the generated code.\n"
            "Also see skill `pulumi-nonexistent` for edge cases."
        ),
        variants={"ts": "```ts\nnew pulumicdk.Stack(\"app\");\n```"},
    )

    authoring = root / "pulumi-authoring"
    write_skill(
        authoring / "skills",
        "pulumi-component",
        COMPONENT_DESCRIPTION,
        body=(
            "# Components\n\n"
            "Define a ComponentResource subclass. See [outputs](references/outputs.md)."
        ),
        variants={
            "ts": "```ts\nclass Vpc extends pulumi.ComponentResource {}\n```",
            "go": "```go\ntype Vpc struct{ pulumi.ResourceState }\n```",
        },
        files={"references/outputs.md": "Register outputs with registerOutputs()."},
    )
    write_skill(
        authoring / "skills",
        "pulumi-esc",
        ESC_DESCRIPTION,
        body="# Pulumi ESC\n\nStore secrets in an environment and import it from stacks.",
        variants={
            "ts": "```ts\nconst env = new esc.Environment(\"dev\");\n```",
            "python": "```python\nenv = esc.Environment(\"dev\")\n```",
        },
    )
    plugin_dir = authoring / ".claude-plugin"
    plugin_dir.mkdir(parents=True)
    (plugin_dir / "plugin.json").write_text(
        json.dumps(
            {
                "name": "pulumi-authoring",
                "version": "2.0.0",
                "description": "Author Pulumi programs and components",
                "category": "authoring",
            }
        ),
        encoding="utf-8",
    )

    return root


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of any config files."""
    return Config()
