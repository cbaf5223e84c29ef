"""Tests for activation matching."""

from __future__ import annotations

import pytest

from skillpack.activation import ActivationMatcher, ActivationQuery
from skillpack.config import ActivationConfig, MatchWeights
from skillpack.skills import PackageIndex
from tests.utils import (
    CDK_DESCRIPTION,
    CFN_DESCRIPTION,
    COMPONENT_DESCRIPTION,
    ESC_DESCRIPTION,
    make_package,
)


@pytest.fixture
def index() -> PackageIndex:
    return PackageIndex(
        [
            make_package("cloudformation-to-pulumi", CFN_DESCRIPTION, languages={"ts": "ts"}),
            make_package("pulumi-cdk-to-pulumi", CDK_DESCRIPTION, languages={"ts": "ts"}),
            make_package(
                "pulumi-component", COMPONENT_DESCRIPTION, languages={"ts": "ts", "go": "go"}
            ),
            make_package("pulumi-esc", ESC_DESCRIPTION, languages={"ts": "ts", "python": "py"}),
        ]
    )


@pytest.fixture
def matcher() -> ActivationMatcher:
    return ActivationMatcher()


class TestActivationQuery:
    def test_language_normalized(self) -> None:
        query = ActivationQuery("deploy", declared_language="TypeScript")
        assert query.declared_language == "ts"

    def test_already_loaded_frozen(self) -> None:
        query = ActivationQuery("deploy", already_loaded={"a"})  # type: ignore[arg-type]
        assert query.already_loaded == frozenset({"a"})


class TestTerms:
    def test_stopwords_removed_and_stemmed(self, matcher: ActivationMatcher) -> None:
        assert matcher.terms("Convert my CloudFormation stacks to Pulumi") == [
            "conver",
            "cloudf",
            "stack",
            "pulumi",
        ]

    def test_conversion_and_convert_share_a_stem(self, matcher: ActivationMatcher) -> None:
        assert matcher.terms("conversion") == matcher.terms("convert")

    def test_trigger_clauses(self, matcher: ActivationMatcher) -> None:
        clauses = matcher.trigger_clauses(CFN_DESCRIPTION)
        assert clauses == ["a user requests migration or conversion of cloudformation to pulumi"]

    def test_trigger_clause_stops_at_sentence_end(self, matcher: ActivationMatcher) -> None:
        clauses = matcher.trigger_clauses("Does things. Use when deploying. Not this part.")
        assert clauses == ["deploying"]

    def test_no_trigger_marker(self, matcher: ActivationMatcher) -> None:
        assert matcher.trigger_clauses("Plain description without markers.") == []


class TestScenarios:
    """Ranking for representative user requests."""

    def test_cloudformation_conversion(
        self, matcher: ActivationMatcher, index: PackageIndex
    ) -> None:
        query = ActivationQuery("convert my CloudFormation stack to Pulumi", "ts")
        candidates = matcher.match(query, index)

        assert candidates[0].name == "cloudformation-to-pulumi"
        top = candidates[0]
        assert top.trigger_hits == 3
        assert top.language_match is True

    def test_oidc_credentials(self, matcher: ActivationMatcher, index: PackageIndex) -> None:
        candidates = matcher.match(ActivationQuery("set up AWS OIDC credentials"), index)

        assert candidates[0].name == "pulumi-esc"
        assert candidates[0].trigger_hits == 3
        assert candidates[0].score > candidates[1].score

    def test_trigger_hit_outranks_keyword_only(
        self, matcher: ActivationMatcher, index: PackageIndex
    ) -> None:
        candidates = matcher.match(ActivationQuery("migrate CDK constructs"), index)
        assert candidates[0].name == "pulumi-cdk-to-pulumi"

    def test_name_mentioned_verbatim(
        self, matcher: ActivationMatcher, index: PackageIndex
    ) -> None:
        candidates = matcher.match(ActivationQuery("open pulumi-component docs"), index)
        assert candidates[0].name == "pulumi-component"
        assert candidates[0].name_match

    def test_phrase_match_bonus(self, matcher: ActivationMatcher) -> None:
        package = make_package(
            "tf-import", "Imports Terraform state. Use when importing terraform state files."
        )
        candidate = matcher.score(ActivationQuery("importing terraform state files"), package)
        assert candidate.phrase_match
        assert candidate.score >= matcher.config.weights.phrase


class TestMatchContract:
    """Ordering, filtering and purity."""

    def test_empty_intent(self, matcher: ActivationMatcher, index: PackageIndex) -> None:
        assert matcher.match(ActivationQuery(""), index) == []
        assert matcher.match(ActivationQuery("   "), index) == []

    def test_stopwords_only_intent(self, matcher: ActivationMatcher, index: PackageIndex) -> None:
        assert matcher.match(ActivationQuery("please help me with this"), index) == []

    def test_no_match(self, matcher: ActivationMatcher, index: PackageIndex) -> None:
        assert matcher.match(ActivationQuery("bake sourdough bread"), index) == []

    def test_scores_positive_and_sorted(
        self, matcher: ActivationMatcher, index: PackageIndex
    ) -> None:
        candidates = matcher.match(ActivationQuery("pulumi stack secrets"), index)
        assert candidates
        assert all(c.score > 0 for c in candidates)
        keys = [(-c.score, c.name) for c in candidates]
        assert keys == sorted(keys)

    def test_ties_broken_by_name(self, matcher: ActivationMatcher) -> None:
        index = PackageIndex(
            [
                make_package("zeta", "Handles widgets."),
                make_package("alpha", "Handles widgets."),
            ]
        )
        candidates = matcher.match(ActivationQuery("widgets"), index)
        assert [c.name for c in candidates] == ["alpha", "zeta"]
        assert candidates[0].score == candidates[1].score

    def test_deterministic(self, matcher: ActivationMatcher, index: PackageIndex) -> None:
        query = ActivationQuery("convert CDK stacks to Pulumi", "go")
        assert matcher.match(query, index) == matcher.match(query, index)

    def test_already_loaded_flagged_not_excluded(
        self, matcher: ActivationMatcher, index: PackageIndex
    ) -> None:
        query = ActivationQuery(
            "set up AWS OIDC credentials", already_loaded=frozenset({"pulumi-esc"})
        )
        candidates = matcher.match(query, index)
        assert candidates[0].name == "pulumi-esc"
        assert candidates[0].already_loaded

    def test_top_k(self, index: PackageIndex) -> None:
        matcher = ActivationMatcher(ActivationConfig(top_k=1))
        candidates = matcher.match(ActivationQuery("pulumi stack secrets"), index)
        assert len(candidates) == 1

    def test_min_score(self, index: PackageIndex) -> None:
        matcher = ActivationMatcher(ActivationConfig(min_score=100.0))
        assert matcher.match(ActivationQuery("convert CloudFormation to Pulumi"), index) == []


class TestLanguageAdjustment:
    def test_bonus_for_matching_variant(self, matcher: ActivationMatcher) -> None:
        package = make_package("esc", ESC_DESCRIPTION, languages={"ts": "ts"})
        plain = matcher.score(ActivationQuery("OIDC credentials"), package)
        with_ts = matcher.score(ActivationQuery("OIDC credentials", "typescript"), package)

        assert plain.language_match is None
        assert with_ts.language_match is True
        assert with_ts.score == pytest.approx(plain.score + matcher.config.weights.language_bonus)

    def test_penalty_never_disqualifies(self, matcher: ActivationMatcher) -> None:
        package = make_package("esc", ESC_DESCRIPTION, languages={"ts": "ts"})
        index = PackageIndex([package])
        candidates = matcher.match(ActivationQuery("OIDC credentials", "go"), index)

        assert [c.name for c in candidates] == ["esc"]
        assert candidates[0].language_match is False
        assert candidates[0].score == pytest.approx(
            candidates[0].base_score - matcher.config.weights.language_penalty
        )

    def test_language_alone_does_not_match(self, matcher: ActivationMatcher) -> None:
        package = make_package("esc", ESC_DESCRIPTION, languages={"go": "go"})
        assert matcher.score(ActivationQuery("bake bread", "go"), package).score == 0.0

    def test_breaks_ties_between_equal_bases(self, matcher: ActivationMatcher) -> None:
        index = PackageIndex(
            [
                make_package("alpha", "Handles widgets."),
                make_package("zeta", "Handles widgets.", languages={"go": "go"}),
            ]
        )
        candidates = matcher.match(ActivationQuery("widgets", "go"), index)
        assert [c.name for c in candidates] == ["zeta", "alpha"]


class TestConfigurableWeights:
    def test_keyword_weight_zero_uses_triggers_only(self, index: PackageIndex) -> None:
        matcher = ActivationMatcher(
            ActivationConfig(weights=MatchWeights(keyword=0.0, phrase=0.0, name=0.0))
        )
        candidates = matcher.match(ActivationQuery("AWS"), index)
        # "AWS" appears in a trigger clause only for pulumi-esc
        assert [c.name for c in candidates] == ["pulumi-esc"]
