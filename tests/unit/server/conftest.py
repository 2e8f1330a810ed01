"""Fixtures for HTTP API tests."""

import pytest

from autoreel.server.app import create_app


@pytest.fixture
def app(db_path, workspace):
    return create_app(
        db_path,
        workspace.root,
        title_resolver=lambda reference: "Resolved title",
    )


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)
