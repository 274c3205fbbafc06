"""Tests for the route grouping example."""

import json
import logging

from switchyard.testing import TestClient


class TestGrouping:
    async def test_api_routes_are_halted_by_group(self, example_app) -> None:
        async with TestClient(example_app) as client:
            for path in ("/api/v1/list", "/api/v1/user"):
                response = await client.get(path)
                assert response.status == 200
                assert response.text.startswith("You've visited a group route")

    async def test_unhalted_group_reaches_handler(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/v2/list")
        assert json.loads(response.text) == {"list": "list", "trace": ["v2"]}

    async def test_root_halts_with_json(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/")
        assert response.status == 200
        assert json.loads(response.text) == {"message": "Hello World!"}

    async def test_global_middleware_applies_to_earlier_routes(
        self, example_app, caplog
    ) -> None:
        with caplog.at_level(logging.INFO, logger="grouping"):
            async with TestClient(example_app) as client:
                await client.get("/v2/list")

        messages = [r.getMessage() for r in caplog.records if r.name == "grouping"]
        assert messages == [
            "--> GET /v2/list",
            "called from v2",
            "served /v2/list",
            "<-- GET /v2/list 200",
        ]

    async def test_halted_request_still_logs_access_line(self, example_app, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="grouping"):
            async with TestClient(example_app) as client:
                await client.get("/api/v1/list")

        messages = [r.getMessage() for r in caplog.records if r.name == "grouping"]
        assert messages == [
            "--> GET /api/v1/list",
            "called from api",
            "served /api/v1/list",
            "<-- GET /api/v1/list 200",
        ]
