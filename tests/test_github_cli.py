import asyncio
import os
import sys

import pytest

from hooksync.github_cli import GhClient, _kill


async def test_call_returns_trimmed_stdout():
    client = GhClient(sys.executable, timeout=10)

    result = await client.call(["-c", "print('  12345  ')"])

    assert result.success is True
    assert result.text == "12345"


async def test_call_passes_arguments_verbatim():
    client = GhClient(sys.executable, timeout=10)

    result = await client.call(["-c", "import sys; print(sys.argv[1])", "config[secret]=a b;$(rm -rf /)"])

    assert result.text == "config[secret]=a b;$(rm -rf /)"


async def test_failure_returns_stderr():
    client = GhClient(sys.executable, timeout=10)

    result = await client.call(["-c", "import sys; sys.stderr.write('HTTP 404: Not Found'); sys.exit(1)"])

    assert result.success is False
    assert result.text == "HTTP 404: Not Found"


async def test_timeout_is_a_failure():
    client = GhClient(sys.executable, timeout=0.2)

    result = await client.call(["-c", "import time; time.sleep(10)"])

    assert result.success is False
    assert "Timed out" in result.text


async def test_missing_binary_is_a_failure():
    client = GhClient("definitely-not-a-real-gh-binary")

    result = await client.call(["auth", "status"])

    assert result.success is False
    assert client.is_available() is False
    assert await client.check_auth() is False


async def test_cancelled_call_kills_child(tmp_path):
    pid_file = tmp_path / "child.pid"
    client = GhClient(sys.executable, timeout=30)
    script = f"import os, time; open({str(pid_file)!r}, 'w').write(str(os.getpid())); time.sleep(30)"

    task = asyncio.create_task(client.call(["-c", script]))
    for _ in range(100):
        if pid_file.exists() and pid_file.read_text():
            break
        await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with pytest.raises(ProcessLookupError):
        os.kill(int(pid_file.read_text()), 0)


def test_kill_tolerates_already_exited_process():
    class Exited:
        def kill(self):
            raise ProcessLookupError

    _kill(Exited())
