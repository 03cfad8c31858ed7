"""Tests for the registry JSON API."""

from __future__ import annotations

import json
from typing import Any

from httpx import AsyncClient

import tessera.dashboard as dash_module
from tessera.collaborators import StepOutcome
from tessera.registry import Registry


def _template_body(template_id: str = "redis-v2", **overrides: Any) -> dict[str, Any]:
    body = {
        "id": template_id,
        "name": "Redis Cache",
        "description": "Managed Redis cache cluster",
        "version": "2.0.0",
        "maturity_level": "L2_DEPLOYMENT",
        "phase": "STANDARDIZATION",
    }
    body.update(overrides)
    return body


class RejectingSourceControl:
    async def submit_for_execution(self, step: str) -> StepOutcome:
        return StepOutcome(step=step, success=False, detail="change freeze")


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["capabilities"] == 3

    async def test_uninitialized(self, bare_client: AsyncClient) -> None:
        resp = await bare_client.get("/api/health")
        assert resp.json()["status"] == "uninitialized"
        resp = await bare_client.get("/api/capabilities")
        assert resp.status_code == 500


class TestCapabilitiesAPI:
    async def test_list(self, client: AsyncClient) -> None:
        resp = await client.get("/api/capabilities")
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()] == ["redis", "postgres", "api"]

    async def test_list_filters(self, client: AsyncClient) -> None:
        resp = await client.get("/api/capabilities", params={"maturity": "l3_operations"})
        assert [c["id"] for c in resp.json()] == ["postgres"]
        resp = await client.get("/api/capabilities", params={"phase": "FOUNDATION"})
        assert [c["id"] for c in resp.json()] == ["api"]
        resp = await client.get("/api/capabilities", params={"search": "relational"})
        assert [c["id"] for c in resp.json()] == ["postgres"]

    async def test_list_bad_enum(self, client: AsyncClient) -> None:
        resp = await client.get("/api/capabilities", params={"maturity": "L9"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_detail(self, client: AsyncClient) -> None:
        resp = await client.get("/api/capability/postgres")
        assert resp.status_code == 200
        data = resp.json()
        assert data["dependencies"] == ["redis"]
        assert data["missing_dependencies"] == []
        assert data["dependents"] == ["api"]
        assert data["templates"][0]["id"] == "pg-v1"

    async def test_detail_not_found(self, client: AsyncClient) -> None:
        resp = await client.get("/api/capability/ghost")
        assert resp.status_code == 404
        error = resp.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["details"] == {"kind": "capability", "key": "ghost"}

    async def test_register(self, client: AsyncClient) -> None:
        body = {
            "id": "kafka",
            "name": "Kafka",
            "description": "Event streaming",
            "maturity_level": "L1_GENERATION",
            "phase": "FOUNDATION",
            "dependencies": ["zookeeper"],
        }
        resp = await client.post("/api/capabilities", json=body)
        assert resp.status_code == 201
        assert resp.json()["dependencies"] == ["zookeeper"]
        detail = (await client.get("/api/capability/kafka")).json()
        assert detail["missing_dependencies"] == ["zookeeper"]

    async def test_register_duplicate(self, client: AsyncClient) -> None:
        body = {
            "id": "redis",
            "name": "Redis",
            "description": "again",
            "maturity_level": "L1_GENERATION",
            "phase": "FOUNDATION",
        }
        resp = await client.post("/api/capabilities", json=body)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "DUPLICATE_ID"

    async def test_register_missing_field(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capabilities", json={"id": "x", "name": "X"})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["field"] == "description"

    async def test_invalid_json_body(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/capabilities", content=b"{nope", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Invalid JSON body"

    async def test_non_object_body(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capabilities", json=[1, 2])
        assert resp.status_code == 400

    async def test_update(self, client: AsyncClient) -> None:
        resp = await client.patch("/api/capability/api", json={"description": "Edge routing and auth"})
        assert resp.status_code == 200
        assert resp.json()["description"] == "Edge routing and auth"

    async def test_update_id_is_immutable(self, client: AsyncClient) -> None:
        resp = await client.patch("/api/capability/api", json={"id": "gateway"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "IMMUTABLE_FIELD"

    async def test_update_downgrade(self, client: AsyncClient) -> None:
        resp = await client.patch("/api/capability/postgres", json={"maturity_level": "L1_GENERATION"})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "INVALID_PROGRESSION"
        assert error["details"]["current"] == "L3_OPERATIONS"

    async def test_update_unknown_field(self, client: AsyncClient) -> None:
        resp = await client.patch("/api/capability/api", json={"owner": "me"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_set_maturity(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/api/maturity", json={"maturity_level": "L3_OPERATIONS"})
        assert resp.status_code == 200
        assert resp.json()["maturity_level"] == "L3_OPERATIONS"

    async def test_set_maturity_skip(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/api/maturity", json={"maturity_level": "L4_GOVERNANCE"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_PROGRESSION"

    async def test_set_maturity_requires_level(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/api/maturity", json={})
        assert resp.status_code == 400

    async def test_delete_blocked(self, client: AsyncClient) -> None:
        resp = await client.delete("/api/capability/redis")
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "HAS_DEPENDENTS"
        assert error["details"]["dependents"] == ["PostgreSQL"]

    async def test_delete(self, client: AsyncClient) -> None:
        resp = await client.delete("/api/capability/api")
        assert resp.json() == {"deleted": "api"}
        assert (await client.get("/api/capability/api")).status_code == 404

    async def test_delete_missing(self, client: AsyncClient) -> None:
        assert (await client.delete("/api/capability/ghost")).status_code == 404


class TestTemplatesAPI:
    async def test_add_template_with_conflicts(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/redis/templates", json=_template_body())
        assert resp.status_code == 201
        data = resp.json()
        assert data["template"]["id"] == "redis-v2"
        assert [c["type"] for c in data["conflicts"]] == ["name", "functionality", "version"]

    async def test_add_duplicate_template(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/redis/templates", json=_template_body("redis-v1", name="Other"))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "DUPLICATE_TEMPLATE_ID"

    async def test_add_template_unknown_capability(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/ghost/templates", json=_template_body())
        assert resp.status_code == 404

    async def test_add_template_invalid(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/redis/templates", json=_template_body(version="latest"))
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["field"] == "version"

    async def test_list_templates(self, client: AsyncClient) -> None:
        resp = await client.get("/api/templates")
        data = resp.json()
        assert [(t["capability_id"], t["id"]) for t in data] == [("redis", "redis-v1"), ("postgres", "pg-v1")]

    async def test_list_templates_filters(self, client: AsyncClient) -> None:
        resp = await client.get("/api/templates", params={"phase": "operationalization"})
        assert [t["id"] for t in resp.json()] == ["pg-v1"]
        resp = await client.get("/api/templates", params={"capability": "redis"})
        assert [t["id"] for t in resp.json()] == ["redis-v1"]
        resp = await client.get("/api/templates", params={"version": "1.2.0"})
        assert [t["id"] for t in resp.json()] == ["pg-v1"]
        resp = await client.get("/api/templates", params={"phase": "nope"})
        assert resp.status_code == 400


class TestConflictsAPI:
    async def test_conflicts_and_resolutions(self, client: AsyncClient) -> None:
        body = {"template": _template_body("redis-v1", name="Different", description="Unrelated text")}
        resp = await client.post("/api/conflicts", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert [c["type"] for c in data["conflicts"]] == ["id"]
        assert [r["strategy"] for r in data["resolutions"]] == ["rename"]
        assert data["resolutions"][0]["effort"] == "small"

    async def test_no_conflicts(self, client: AsyncClient) -> None:
        body = {
            "template": _template_body("fresh", name="Fresh", description="Nothing alike", phase="GOVERNANCE"),
            "capability_id": "api",
        }
        data = (await client.post("/api/conflicts", json=body)).json()
        assert data == {"conflicts": [], "resolutions": []}

    async def test_template_required(self, client: AsyncClient) -> None:
        resp = await client.post("/api/conflicts", json={"capability_id": "redis"})
        assert resp.status_code == 400

    async def test_capability_id_must_be_string(self, client: AsyncClient) -> None:
        resp = await client.post("/api/conflicts", json={"template": _template_body(), "capability_id": 5})
        assert resp.status_code == 400

    async def test_unknown_capability(self, client: AsyncClient) -> None:
        resp = await client.post("/api/conflicts", json={"template": _template_body(), "capability_id": "ghost"})
        assert resp.status_code == 404

    async def test_resolve(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/redis-v1/resolve", json={"strategy": "namespace"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Redis - Redis Cache"

    async def test_resolve_version(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/pg-v1/resolve", json={"strategy": "version"})
        assert resp.json()["version"] == "2.0.0"

    async def test_resolve_bad_strategy(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/redis-v1/resolve", json={"strategy": "explode"})
        assert resp.status_code == 400

    async def test_resolve_unknown_template(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/ghost/resolve", json={"strategy": "merge"})
        assert resp.status_code == 404

    async def test_rename_onto_existing_sibling(self, client: AsyncClient) -> None:
        resp = await client.post("/api/capability/redis/templates", json=_template_body("redis-v1-v2", name="Other"))
        assert resp.status_code == 201
        resp = await client.post("/api/template/redis-v1/resolve", json={"strategy": "rename"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "DUPLICATE_TEMPLATE_ID"
        resp = await client.get("/api/capability/redis")
        assert [t["id"] for t in resp.json()["templates"]] == ["redis-v1", "redis-v1-v2"]


class TestPlanningAPI:
    async def test_migration_plan(self, client: AsyncClient) -> None:
        resp = await client.get("/api/template/redis-v1/migration-plan")
        assert resp.status_code == 200
        data = resp.json()
        assert data["strategy"] == "gradual"
        assert data["to_template"] is None
        assert len(data["migration_path"]) == 7

    async def test_migration_plan_with_target(self, client: AsyncClient) -> None:
        resp = await client.get("/api/template/redis-v1/migration-plan", params={"target": "pg-v1"})
        data = resp.json()
        assert data["strategy"] == "parallel"
        assert data["estimated_duration"] == "4 weeks"
        assert "Target template pg-v1 available" in data["dependencies"]

    async def test_migration_plan_unknown_target(self, client: AsyncClient) -> None:
        resp = await client.get("/api/template/redis-v1/migration-plan", params={"target": "ghost"})
        assert resp.status_code == 404

    async def test_execute_phase(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/template/redis-v1/execute-phase", json={"phase_id": "parallel-setup", "target": "pg-v1"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["completed_phases"] == ["parallel-setup"]
        assert [o["step"] for o in data["outcomes"]][0] == "Deploy new template infrastructure"

    async def test_execute_phase_requires_phase_id(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/redis-v1/execute-phase", json={})
        assert resp.status_code == 400

    async def test_execute_unknown_phase(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/redis-v1/execute-phase", json={"phase_id": "nope"})
        assert resp.status_code == 404
        assert resp.json()["error"]["details"]["kind"] == "migration phase"

    async def test_execute_phase_step_failure(self, client: AsyncClient, populated_registry: Registry) -> None:
        dash_module._registry = Registry(populated_registry.store, source_control=RejectingSourceControl())
        resp = await client.post(
            "/api/template/redis-v1/execute-phase", json={"phase_id": "deprecation-announcement"}
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "INVALID_PHASE"
        assert "change freeze" in error["message"]

    async def test_deprecation_plan(self, client: AsyncClient) -> None:
        body = {"reason": "Superseded", "timeline_months": 12, "now": "2026-03-01T12:00:00+00:00"}
        resp = await client.post("/api/template/redis-v1/deprecation-plan", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert data["support_level"] == "full"
        assert data["deprecation_date"] == "2026-03-31T12:00:00+00:00"
        assert data["end_of_life_date"] == "2027-02-24T12:00:00+00:00"
        assert data["replacement_templates"] == []

    async def test_deprecation_plan_validation(self, client: AsyncClient) -> None:
        url = "/api/template/redis-v1/deprecation-plan"
        for body in (
            {"timeline_months": 6},
            {"reason": "x", "timeline_months": 0},
            {"reason": "x", "timeline_months": True},
            {"reason": "x", "timeline_months": "6"},
            {"reason": "x", "timeline_months": 6, "now": "soon"},
        ):
            resp = await client.post(url, json=body)
            assert resp.status_code == 400, json.dumps(body)

    async def test_deprecation_plan_unknown(self, client: AsyncClient) -> None:
        resp = await client.post("/api/template/ghost/deprecation-plan", json={"reason": "x", "timeline_months": 6})
        assert resp.status_code == 404


class TestDiscoveryAPI:
    async def test_similar(self, client: AsyncClient) -> None:
        resp = await client.get("/api/template/redis-v1/similar", params={"threshold": 0})
        assert [t["id"] for t in resp.json()] == ["pg-v1"]
        resp = await client.get("/api/template/redis-v1/similar")
        assert resp.json() == []

    async def test_similar_bad_threshold(self, client: AsyncClient) -> None:
        resp = await client.get("/api/template/redis-v1/similar", params={"threshold": 2})
        assert resp.status_code == 400

    async def test_similar_unknown(self, client: AsyncClient) -> None:
        assert (await client.get("/api/template/ghost/similar")).status_code == 404

    async def test_reusability(self, client: AsyncClient) -> None:
        resp = await client.get("/api/template/pg-v1/reusability")
        assert resp.status_code == 200
        data = resp.json()
        assert data["template"]["id"] == "pg-v1"
        assert 0 <= data["reusability_score"] <= 100
        assert data["composition"] == []

    async def test_reusability_unknown(self, client: AsyncClient) -> None:
        assert (await client.get("/api/template/ghost/reusability")).status_code == 404

    async def test_improvements(self, client: AsyncClient) -> None:
        resp = await client.get("/api/capability/api/improvements")
        assert [i["description"] for i in resp.json()] == [
            "Add deployment automation to reach L2 maturity",
            "Add templates to capability",
        ]

    async def test_improvements_unknown(self, client: AsyncClient) -> None:
        assert (await client.get("/api/capability/ghost/improvements")).status_code == 404


class TestPersistence:
    async def test_mutations_are_saved(self, file_client: tuple[AsyncClient, Registry]) -> None:
        client, registry = file_client
        body = {
            "id": "kafka",
            "name": "Kafka",
            "description": "Event streaming",
            "maturity_level": "L1_GENERATION",
            "phase": "FOUNDATION",
        }
        resp = await client.post("/api/capabilities", json=body)
        assert resp.status_code == 201
        assert registry.path is not None
        saved = json.loads(registry.path.read_text())
        assert list(saved["capabilities"]) == ["kafka"]
