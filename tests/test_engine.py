"""Tests for the SkillEngine snapshot lifecycle and activation."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillpack.compose import ComposedBundle, CompositionBudget, SectionKind
from skillpack.config import Config
from skillpack.engine import ClarificationNeeded, SkillEngine, Snapshot
from skillpack.skills import DuplicateName
from tests.utils import write_skill


@pytest.fixture
def engine(config: Config, skill_root: Path) -> SkillEngine:
    return SkillEngine(config, root_paths=[skill_root])


class TestSnapshot:
    """Test snapshot publication and replacement."""

    def test_first_access_scans(self, engine: SkillEngine) -> None:
        snapshot = engine.snapshot
        assert snapshot.generation == 1
        assert len(snapshot.index) == 4
        assert engine.snapshot is snapshot

    def test_warnings_include_dangling_references(self, engine: SkillEngine) -> None:
        kinds = [w.kind for w in engine.snapshot.warnings]
        assert kinds == ["dangling-reference"]

    def test_reload_publishes_new_generation(
        self, engine: SkillEngine, skill_root: Path
    ) -> None:
        old = engine.snapshot
        write_skill(skill_root / "pulumi-authoring" / "skills", "pulumi-policy", "Policy as code")

        new = engine.reload()

        assert new.generation == old.generation + 1
        assert "pulumi-policy" in new.index
        # The old snapshot is untouched
        assert "pulumi-policy" not in old.index
        assert engine.snapshot is new

    def test_failed_reload_keeps_previous_snapshot(
        self, engine: SkillEngine, skill_root: Path
    ) -> None:
        old = engine.snapshot
        write_skill(skill_root / "pulumi-migration" / "skills", "pulumi-esc", "Duplicate")

        with pytest.raises(DuplicateName):
            engine.reload()

        assert engine.snapshot is old
        assert engine.snapshot.generation == 1

    def test_reload_callbacks(self, engine: SkillEngine) -> None:
        seen: list[Snapshot] = []
        unregister = engine.on_reload(seen.append)

        first = engine.reload()
        unregister()
        engine.reload()

        assert seen == [first]

    def test_failing_callback_does_not_block_publication(self, engine: SkillEngine) -> None:
        def broken(snapshot: Snapshot) -> None:
            raise RuntimeError("boom")

        engine.on_reload(broken)
        snapshot = engine.reload()
        assert engine.snapshot is snapshot

    def test_roots_from_config(self, skill_root: Path) -> None:
        config = Config()
        config.index.roots = [str(skill_root)]
        engine = SkillEngine(config)
        assert engine.roots == [skill_root]
        assert len(engine.snapshot.index) == 4


class TestActivate:
    """Test the full match-then-compose path."""

    def test_cloudformation_request(self, engine: SkillEngine) -> None:
        result = engine.activate("convert my CloudFormation stack to Pulumi", "ts")

        assert isinstance(result, ComposedBundle)
        assert result.selected == ("cloudformation-to-pulumi",)
        assert result.has_section("cloudformation-to-pulumi", SectionKind.LANGUAGE)
        # Referenced from the primary content
        assert result.has_section("pulumi-esc", SectionKind.REFERENCE)

    def test_oidc_request(self, engine: SkillEngine) -> None:
        result = engine.activate("set up AWS OIDC credentials")
        assert isinstance(result, ComposedBundle)
        assert result.selected == ("pulumi-esc",)

    def test_no_match_needs_clarification(self, engine: SkillEngine) -> None:
        result = engine.activate("bake sourdough bread", "go")
        assert isinstance(result, ClarificationNeeded)
        assert result.intent == "bake sourdough bread"
        assert result.declared_language == "go"

    def test_empty_request_needs_clarification(self, engine: SkillEngine) -> None:
        assert isinstance(engine.activate("  "), ClarificationNeeded)

    def test_already_loaded_winner_yields_empty_bundle(self, engine: SkillEngine) -> None:
        result = engine.activate("set up AWS OIDC credentials", already_loaded=["pulumi-esc"])
        assert isinstance(result, ComposedBundle)
        assert result.is_empty

    def test_explicit_budget(self, engine: SkillEngine) -> None:
        result = engine.activate(
            "convert my CloudFormation stack to Pulumi", "ts", budget=CompositionBudget(150)
        )
        assert isinstance(result, ComposedBundle)
        assert result.size <= 150
        assert result.truncated
        assert result.dropped == ("pulumi-esc", "cloudformation-to-pulumi/examples-ts")

    def test_max_selected(self, skill_root: Path) -> None:
        config = Config()
        config.activation.max_selected = 2
        engine = SkillEngine(config, root_paths=[skill_root])

        result = engine.activate("convert my CloudFormation stack to Pulumi")

        assert isinstance(result, ComposedBundle)
        assert result.selected == ("cloudformation-to-pulumi", "pulumi-cdk-to-pulumi")

    def test_match_and_compose_helpers(self, engine: SkillEngine) -> None:
        candidates = engine.match("set up AWS OIDC credentials")
        bundle = engine.compose([candidates[0].name])
        assert bundle.packages == ("pulumi-esc",)


class TestCache:
    """Test the on-disk index cache through the engine."""

    def test_cache_written_and_reused(self, skill_root: Path, tmp_path: Path) -> None:
        cache_path = tmp_path / "cache" / "index.yaml"
        config = Config()
        config.index.cache_path = str(cache_path)

        first = SkillEngine(config, root_paths=[skill_root]).snapshot
        assert cache_path.exists()

        second = SkillEngine(config, root_paths=[skill_root]).snapshot
        assert second.index.names() == first.index.names()
        assert second.index.fingerprint == first.index.fingerprint
        assert second.graph.to_dict() == first.graph.to_dict()
