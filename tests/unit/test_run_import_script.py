"""
Tests for the foreground import script
"""

import importlib.util
import pytest
from pathlib import Path
from unittest.mock import AsyncMock
from models.base import ImportStatus

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "run_import.py"


@pytest.fixture(scope="module")
def run_import_script():
    spec = importlib.util.spec_from_file_location("run_import_script", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRunImportScript:

    @pytest.mark.asyncio
    async def test_live_job_is_left_alone(self, run_import_script, job_store):
        """A job owned by the API stays active; the script refuses to start"""
        live = await job_store.create_job()
        runner = AsyncMock()

        exit_code = await run_import_script.run_import(job_store, runner)

        assert exit_code == 1
        runner.recover_interrupted.assert_not_awaited()
        runner.run.assert_not_awaited()
        assert (await job_store.get_job(live.id)).status == ImportStatus.DOWNLOADING

    @pytest.mark.asyncio
    async def test_recovery_only_on_request(self, run_import_script, job_store):
        runner = AsyncMock()
        runner.run.return_value = True

        exit_code = await run_import_script.run_import(job_store, runner, limit=5, recover=True)

        assert exit_code == 0
        runner.recover_interrupted.assert_awaited_once()
        job_id = runner.run.await_args.args[0]
        runner.run.assert_awaited_once_with(job_id, 5)

    @pytest.mark.asyncio
    async def test_failed_run_exit_code(self, run_import_script, job_store):
        runner = AsyncMock()
        runner.run.return_value = False

        assert await run_import_script.run_import(job_store, runner) == 1
