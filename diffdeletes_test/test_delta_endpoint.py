#!/usr/bin/env python3
"""
Tests for the delta endpoint and application wiring using FastAPI's TestClient.

The TestClient runs background tasks before returning the response, so the
effects of processing a task can be checked right after the request.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from diffdeletes.config import config_loader
from diffdeletes.impl.diffdeletes_app_impl import DiffDeletesAppImpl, lifespan
from diffdeletes.main.main import create_app
from diffdeletes.model.delta_model import DeltaChangeset, get_task_uris
from diffdeletes.model.task_model import TaskStatus

from conftest import FakeSparqlImpl, make_config, make_triples, write_turtle

OPERATION = "http://lblod.data.gift/id/jobs/concept/TaskOperation/execute-diff-deletes"
TASK_OPERATION = "http://redpencil.data.gift/vocabularies/tasks/operation"


def task_insert(task_uri, operation=OPERATION, predicate=TASK_OPERATION):
    return {
        "subject": {"type": "uri", "value": task_uri},
        "predicate": {"type": "uri", "value": predicate},
        "object": {"type": "uri", "value": operation},
    }


def create_client(sparql, share_dir, **extra):
    config = make_config(deletes={'share_root': f"{share_dir}/"}, **extra)
    app = FastAPI(lifespan=lifespan)
    DiffDeletesAppImpl(app=app, config=config, sparql_impl=sparql)
    return TestClient(app)


class TestDeltaEndpoint:

    def test_hello(self, fake_sparql, share_dir):
        response = create_client(fake_sparql, share_dir).get("/")
        assert response.status_code == 200
        assert "harvesting-execute-diff-deletes-service" in response.text

    def test_task_is_processed(self, share_dir, task_uri):
        write_turtle(share_dir / "deletes.ttl", make_triples(3))
        sparql = FakeSparqlImpl(files={task_uri: "share://deletes.ttl"})
        client = create_client(sparql, share_dir)

        response = client.post("/delta", json=[{"inserts": [task_insert(task_uri)], "deletes": []}])

        assert response.status_code == 200
        assert response.json() == {"message": "Processing", "task_count": 1}
        assert len(sparql.delete_updates) == 1
        assert f"adms:status <{TaskStatus.SUCCESS.value}>" in sparql.status_updates[-1]

    def test_unrelated_inserts_are_ignored(self, fake_sparql, share_dir, task_uri):
        client = create_client(fake_sparql, share_dir)
        body = [{
            "inserts": [
                task_insert(task_uri, operation="http://example.org/other-operation"),
                task_insert(task_uri, predicate="http://www.w3.org/ns/adms#status"),
            ],
            "deletes": [task_insert(task_uri)],
        }]

        response = client.post("/delta", json=body)

        assert response.status_code == 200
        assert response.json()["task_count"] == 0
        assert fake_sparql.updates == []

    def test_failed_task_does_not_affect_response(self, fake_sparql, share_dir, task_uri):
        client = create_client(fake_sparql, share_dir)

        response = client.post("/delta", json=[{"inserts": [task_insert(task_uri)]}])

        assert response.status_code == 200
        assert f"adms:status <{TaskStatus.FAILURE.value}>" in fake_sparql.status_updates[-1]
        assert len(fake_sparql.error_inserts) == 1

    def test_invalid_delta(self, fake_sparql, share_dir):
        client = create_client(fake_sparql, share_dir, errors={'write_errors': True})

        response = client.post("/delta", json={"inserts": "nope"})

        assert response.status_code == 400
        assert len(fake_sparql.error_inserts) == 1
        assert fake_sparql.status_updates == []

    def test_session_closed_on_shutdown(self, fake_sparql, share_dir):
        with create_client(fake_sparql, share_dir) as client:
            client.get("/")
        assert fake_sparql.closed


class TestGetTaskUris:

    def test_deduplicates_in_order(self):
        changesets = [
            DeltaChangeset.model_validate({"inserts": [task_insert("http://t/2"), task_insert("http://t/1")]}),
            DeltaChangeset.model_validate({"inserts": [task_insert("http://t/2")]}),
        ]
        assert get_task_uris(changesets, TASK_OPERATION, OPERATION) == ["http://t/2", "http://t/1"]

    def test_literal_object_does_not_match(self):
        insert = task_insert("http://t/1")
        insert["object"]["type"] = "literal"
        changesets = [DeltaChangeset.model_validate({"inserts": [insert]})]
        assert get_task_uris(changesets, TASK_OPERATION, OPERATION) == []


def write_config(tmp_path):
    path = tmp_path / "diffdeletes-config.yaml"
    path.write_text("deletes:\n  max_batch_size: 20\n", encoding="utf-8")
    return path


class TestCreateApp:

    def test_create_app_from_config_file(self, tmp_path, monkeypatch, fake_sparql):
        monkeypatch.setattr(config_loader, "_config_instance", None)

        app = create_app(str(write_config(tmp_path)), sparql_impl=fake_sparql)

        assert config_loader.get_config().get_max_batch_size() == 20
        assert TestClient(app).get("/").status_code == 200

    def test_created_app_closes_backend_on_shutdown(self, tmp_path, monkeypatch, fake_sparql):
        monkeypatch.setattr(config_loader, "_config_instance", None)
        app = create_app(str(write_config(tmp_path)), sparql_impl=fake_sparql)

        with TestClient(app) as client:
            assert client.get("/").status_code == 200
            assert not fake_sparql.closed
        assert fake_sparql.closed
