"""Tests for improvement, composition and reusability analysis."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from tessera.discovery import CompositionType, ImprovementType, Priority, reusability_score
from tessera.errors import NotFoundError
from tessera.models import DevelopmentPhase, Effort, MaturityLevel
from tessera.registry import Registry
from tessera.store import CapabilityStore

LONG_DESCRIPTION = "Highly available Redis deployment with sentinel failover and nightly backups"


class TestSuggestImprovements:
    @pytest.mark.parametrize(
        ("level", "first_type", "priority"),
        [
            (MaturityLevel.GENERATION, ImprovementType.MATURITY, Priority.HIGH),
            (MaturityLevel.DEPLOYMENT, ImprovementType.MATURITY, Priority.HIGH),
            (MaturityLevel.OPERATIONS, ImprovementType.MATURITY, Priority.MEDIUM),
            (MaturityLevel.GOVERNANCE, ImprovementType.MATURITY, Priority.LOW),
            (MaturityLevel.INTENT_DRIVEN, ImprovementType.PERFORMANCE, Priority.LOW),
        ],
    )
    def test_one_maturity_suggestion_per_level(
        self, registry: Registry, make_capability, make_template, level, first_type, priority
    ) -> None:
        registry.register_capability(make_capability("c", maturity_level=level, templates=[make_template()]))
        improvements = registry.suggest_improvements("c")
        assert len(improvements) == 1
        assert improvements[0].type is first_type
        assert improvements[0].priority is priority

    def test_template_less_capability(self, populated_registry: Registry) -> None:
        improvements = populated_registry.suggest_improvements("api")
        assert [i.description for i in improvements] == [
            "Add deployment automation to reach L2 maturity",
            "Add templates to capability",
        ]
        assert improvements[1].effort is Effort.SMALL

    def test_many_dependencies(self, registry: Registry, make_capability, make_template) -> None:
        deps = [f"dep{i}" for i in range(6)]
        registry.register_capability(make_capability("c", dependencies=deps, templates=[make_template()]))
        descriptions = [i.description for i in registry.suggest_improvements("c")]
        assert "Reduce dependency complexity" in descriptions

    def test_five_dependencies_is_fine(self, registry: Registry, make_capability, make_template) -> None:
        deps = [f"dep{i}" for i in range(5)]
        registry.register_capability(make_capability("c", dependencies=deps, templates=[make_template()]))
        assert len(registry.suggest_improvements("c")) == 1

    def test_unknown_capability(self, registry: Registry) -> None:
        with pytest.raises(NotFoundError):
            registry.suggest_improvements("nope")


class TestComposition:
    @pytest.fixture
    def cache_registry(self, store: CapabilityStore, make_capability, make_template) -> Registry:
        store.register(
            make_capability(
                "cache",
                templates=[
                    make_template("a", name="Cache", description="Redis cache"),
                    make_template("b", name="Cache", description="Redis cache"),
                    make_template("c", name="Cache", description="Redis cache", phase=DevelopmentPhase.FOUNDATION),
                    make_template(
                        "d",
                        name="Queue",
                        description="Message broker",
                        maturity_level=MaturityLevel.GOVERNANCE,
                        phase=DevelopmentPhase.GOVERNANCE,
                    ),
                ],
            )
        )
        return Registry(store)

    def test_suggestions(self, cache_registry: Registry) -> None:
        suggestions = cache_registry.suggest_template_composition("a")
        pairs = [(s.type, s.target_template.id) for s in suggestions]
        assert pairs == [
            (CompositionType.EXTEND, "b"),
            (CompositionType.MERGE, "b"),
            (CompositionType.EXTEND, "c"),
            (CompositionType.COMPOSE, "c"),
        ]
        assert [s.effort for s in suggestions] == [Effort.SMALL, Effort.LARGE, Effort.SMALL, Effort.MEDIUM]

    def test_no_similar_templates(self, cache_registry: Registry) -> None:
        assert cache_registry.suggest_template_composition("d") == []

    def test_unknown_template(self, cache_registry: Registry) -> None:
        with pytest.raises(NotFoundError):
            cache_registry.suggest_template_composition("ghost")


class TestReusability:
    def test_high_score(self, registry: Registry, make_capability, make_template, now: datetime) -> None:
        template = make_template(
            "ha",
            description=LONG_DESCRIPTION,
            maturity_level=MaturityLevel.OPERATIONS,
            created_at=now - timedelta(days=10),
        )
        registry.register_capability(make_capability("c", maturity_level=MaturityLevel.OPERATIONS, templates=[template]))
        analysis = registry.analyze_template_reusability("ha", now=now)
        assert analysis.reusability_score == 95
        assert len(analysis.strengths) == 3
        assert analysis.weaknesses == ()
        assert analysis.improvement_suggestions == ()

    def test_low_score(self, registry: Registry, make_capability, make_template, now: datetime) -> None:
        template = make_template(
            "basic",
            description="Short",
            maturity_level=MaturityLevel.GENERATION,
            created_at=now - timedelta(days=200),
        )
        registry.register_capability(make_capability("c", dependencies=["x", "y", "z"], templates=[template]))
        analysis = registry.analyze_template_reusability("basic", now=now)
        assert analysis.reusability_score == 55
        assert analysis.strengths == ()
        assert len(analysis.weaknesses) == 3
        assert "Add more comprehensive documentation" in analysis.improvement_suggestions

    def test_score_is_clamped(self, make_template, now: datetime) -> None:
        template = make_template(maturity_level=MaturityLevel.INTENT_DRIVEN, created_at=now)
        assert reusability_score(template, 0, now=now) == 100

    @pytest.mark.parametrize(
        ("age_days", "bonus"),
        [(0, 10), (29, 10), (30, 5), (89, 5), (90, 0)],
    )
    def test_age_bonus(self, make_template, now: datetime, age_days: int, bonus: int) -> None:
        template = make_template(maturity_level=MaturityLevel.GENERATION, created_at=now - timedelta(days=age_days))
        # 50 base + 0 maturity + 5 for three dependencies
        assert reusability_score(template, 3, now=now) == 55 + bonus

    def test_compatible_templates(self, populated_registry: Registry, make_template, now: datetime) -> None:
        populated_registry.add_template("redis", make_template("redis-v2", name="Redis Cache"))
        analysis = populated_registry.analyze_template_reusability("redis-v1", now=now)
        assert "redis-v2" in [t.id for t in analysis.compatible_templates]
        assert "redis-v1" not in [t.id for t in analysis.compatible_templates]

    def test_to_dict(self, populated_registry: Registry, now: datetime) -> None:
        data = populated_registry.analyze_template_reusability("pg-v1", now=now).to_dict()
        assert data["template"]["id"] == "pg-v1"
        assert isinstance(data["reusability_score"], int)
