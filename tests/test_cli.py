from unittest.mock import patch

import httpx
import pytest

from vaccination_tracker.cli.tracker_cli import TrackerCLI, build_parser, main, run_command
from vaccination_tracker.config import Settings
from vaccination_tracker.container import build_tracker
from vaccination_tracker.models.tracker_models import Language
from vaccination_tracker.services.network_monitor import StaticNetworkMonitor


@pytest.fixture
def cli(kv_store, clock):
    tracker = build_tracker(
        Settings(STORAGE_BACKEND="memory"),
        store=kv_store,
        clock=clock,
        network_monitor=StaticNetworkMonitor(True),
        transport=httpx.MockTransport(lambda request: httpx.Response(404)),
    )
    return TrackerCLI(tracker)


async def run(cli, *argv):
    return await run_command(cli, build_parser().parse_args(list(argv)))


@pytest.mark.asyncio
async def test_child_workflow(cli):
    assert await run(cli, "add-child", "Mia", "2023-06-15", "China")
    child = (await cli.tracker.list_children())[0]

    assert await run(cli, "children")
    assert await run(cli, "schedule", child.id)
    assert await run(cli, "overdue", child.id)
    assert await run(cli, "upcoming", child.id, "--days", "60")
    assert await run(cli, "complete", f"{child.id}_bcg", "--date", "2023-06-16", "--doctor", "Dr. Li")
    assert not await run(cli, "complete", f"{child.id}_bcg")
    assert not await run(cli, "schedule", "missing")


@pytest.mark.asyncio
async def test_add_child_with_bad_input_fails(cli):
    assert not await run(cli, "add-child", "Mia", "15/06/2023", "China")
    assert not await run(cli, "add-child", "Mia", "2023-06-15", "Atlantis")
    assert await cli.tracker.list_children() == []


@pytest.mark.asyncio
async def test_download_failure_returns_false(cli):
    assert not await run(cli, "download", "Germany")
    assert await run(cli, "download", "USA")
    assert await run(cli, "cache")
    assert await run(cli, "clear-cache")


@pytest.mark.asyncio
async def test_settings_command_updates(cli):
    assert await run(cli, "settings", "--language", "zh", "--show-recommended", "on", "--reminder-days", "3")

    current = await cli.tracker.get_settings()
    assert current.language == Language.ZH
    assert current.show_recommended_vaccines is True
    assert current.reminder_days_before == 3

    assert not await run(cli, "settings", "--reminder-days", "45")


@pytest.mark.asyncio
async def test_custom_vaccine_commands(cli):
    assert await run(cli, "add-child", "Mia", "2023-06-15", "USA")
    assert await run(
        cli, "add-vaccine", "Travel booster", "18", "--disease", "Typhoid", "--doses", "2", "--interval", "24"
    )
    assert await run(cli, "vaccines")

    vaccine = (await cli.tracker.list_custom_vaccines())[0]
    child = (await cli.tracker.list_children())[0]
    assert f"{child.id}_{vaccine.id}_dose1" in {
        r.id for r in await cli.tracker.record_store.get_child_vaccination_records(child.id)
    }

    assert not await run(cli, "add-vaccine", "Broken", "-3")
    assert await run(cli, "delete-vaccine", vaccine.id)
    assert not await run(cli, "delete-vaccine", vaccine.id)
    assert await cli.tracker.list_custom_vaccines() == []


def test_main_without_command_exits_with_error():
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1


def test_main_uses_requested_storage(kv_store, clock):
    with patch("vaccination_tracker.cli.tracker_cli.build_tracker") as mock_build:
        mock_build.return_value = build_tracker(Settings(STORAGE_BACKEND="memory"), store=kv_store, clock=clock)
        with pytest.raises(SystemExit) as exc_info:
            main(["--storage", "memory", "--offline", "children"])

    assert exc_info.value.code == 0
    config = mock_build.call_args.args[0]
    assert config.STORAGE_BACKEND == "memory"
    assert config.OFFLINE_MODE is True
