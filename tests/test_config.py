from __future__ import annotations

import pytest

from commit_harvester.config import HarvestSettings


def test_defaults_without_environment() -> None:
    settings = HarvestSettings.from_env({})

    assert settings.api_url == "https://api.bitbucket.org/2.0"
    assert settings.page_size == 100
    assert settings.channel_size == 10
    assert settings.enrich is False
    assert settings.output_dir == "."
    assert settings.log_level == "INFO"


def test_reads_every_variable() -> None:
    settings = HarvestSettings.from_env({
        "BITBUCKET_API_URL": "http://mirror.local/2.0",
        "HARVEST_PAGE_SIZE": "25",
        "HARVEST_CHANNEL_SIZE": "3",
        "HARVEST_MAX_CONCURRENT": "2",
        "HARVEST_HTTP_TIMEOUT": "7.5",
        "HARVEST_OUTPUT_DIR": "/data/out",
        "HARVEST_ENRICH": "yes",
        "HARVEST_LOG_LEVEL": "debug",
    })

    assert settings == HarvestSettings(
        api_url        = "http://mirror.local/2.0",
        page_size      = 25,
        channel_size   = 3,
        max_concurrent = 2,
        http_timeout   = 7.5,
        output_dir     = "/data/out",
        enrich         = True,
        log_level      = "DEBUG",
    )


@pytest.mark.parametrize("env, message", [
    ({"HARVEST_PAGE_SIZE": "ten"}, "HARVEST_PAGE_SIZE must be an integer"),
    ({"HARVEST_CHANNEL_SIZE": "0"}, "HARVEST_CHANNEL_SIZE must be greater than 0"),
    ({"HARVEST_HTTP_TIMEOUT": "-1"}, "HARVEST_HTTP_TIMEOUT must be greater than 0"),
    ({"HARVEST_HTTP_TIMEOUT": "soon"}, "HARVEST_HTTP_TIMEOUT must be a number"),
    ({"HARVEST_ENRICH": "maybe"}, "HARVEST_ENRICH must be a boolean"),
])
def test_invalid_values_fail_fast(env: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        HarvestSettings.from_env(env)
