import pytest

from app.services.render_worker import get_integration
from scripts import seed_integration as seed_module


@pytest.mark.asyncio
async def test_seeded_integrations_newest_is_used(engine, session_factory, db, monkeypatch):
    monkeypatch.setattr(seed_module, "engine", engine)
    monkeypatch.setattr(seed_module, "AsyncSessionLocal", session_factory)

    first_id = await seed_module.seed_integration(
        service="heygen", api_key="old-key", base_url=None,
        presenter_id="avatar-1", voice_id=None, api_version=None,
    )
    second_id = await seed_module.seed_integration(
        service="heygen", api_key="new-key", base_url="https://eu.heygen.test/",
        presenter_id="avatar-2", voice_id="en-US-1", api_version="v2",
    )

    assert second_id > first_id
    integration = await get_integration(db, "heygen")
    assert integration.api_key == "new-key"
    assert integration.base_url == "https://eu.heygen.test"
    assert integration.avatar_id == "avatar-2"
    assert integration.voice_id == "en-US-1"
    assert integration.api_version == "v2"


def test_cli_parser_requires_api_key():
    parser = seed_module._build_parser()
    args = parser.parse_args(["--api-key", "k", "--api-version", "v1"])
    assert args.service == "heygen"
    assert args.api_key == "k"
    with pytest.raises(SystemExit):
        parser.parse_args([])
