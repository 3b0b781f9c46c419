"""Tests for the async command runner."""

import asyncio

import pytest

from measure.commands import CommandError, CommandResult, CommandRunner


class TestCommandResult:
    """Tests for CommandResult decoding."""

    def test_text_keeps_undecodable_bytes(self):
        result = CommandResult(returncode=0, stdout=b"caf\xe9.ts\n", stderr=b"")

        assert result.text == "caf\udce9.ts\n"
        assert result.text.encode("utf-8", errors="surrogateescape") == b"caf\xe9.ts\n"


class TestCommandRunner:
    """Tests for CommandRunner against real processes."""

    @pytest.mark.asyncio
    async def test_captures_output(self, tmp_path):
        result = await CommandRunner().run(["sh", "-c", "printf hello; pwd"], cwd=tmp_path)

        assert result.returncode == 0
        assert result.text.startswith("hello")

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        with pytest.raises(CommandError, match="broken") as exc_info:
            await CommandRunner().run(["sh", "-c", "echo broken >&2; exit 3"])

        assert exc_info.value.returncode == 3

    @pytest.mark.asyncio
    async def test_non_zero_exit_unchecked(self):
        result = await CommandRunner().run(["sh", "-c", "exit 3"], check=False)

        assert result.returncode == 3

    @pytest.mark.asyncio
    async def test_missing_program(self):
        with pytest.raises(CommandError, match="cannot execute"):
            await CommandRunner().run(["git-measure-no-such-program"])

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(CommandError, match="timed out after 0.2s"):
            await CommandRunner(timeout=0.2).run(["sleep", "5"])

    @pytest.mark.asyncio
    async def test_cancelled_child_is_killed(self, tmp_path):
        task = asyncio.create_task(
            CommandRunner().run(["sh", "-c", "sleep 0.5; touch done"], cwd=tmp_path)
        )
        await asyncio.sleep(0.2)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(1)

        assert not (tmp_path / "done").exists()

    @pytest.mark.asyncio
    async def test_concurrency_limit(self, tmp_path):
        runner = CommandRunner(max_concurrency=1)
        script = "mkdir lock || exit 1; sleep 0.1; rmdir lock"

        results = await asyncio.gather(
            *(runner.run(["sh", "-c", script], cwd=tmp_path) for _ in range(3))
        )

        assert [r.returncode for r in results] == [0, 0, 0]
