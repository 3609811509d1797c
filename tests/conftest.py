"""
Pytest fixtures and configuration for the devstrap test suite.
"""

import io
import subprocess
import tarfile
import zipfile
from pathlib import Path

import httpx
import pytest
import structlog
from rich.console import Console

from devstrap.cli.display import StatusConsole
from devstrap.config.environment import SearchPath
from devstrap.config.settings import DevstrapSettings, ShellKind
from devstrap.setup.installer import InstallContext
from devstrap.setup.runner import CommandRunner
from devstrap.utils.http_client import DownloadClient, HTTPClientConfig

# ============================================================================
# Fakes
# ============================================================================


class FakeRunner(CommandRunner):
    """
    CommandRunner that never starts a process.

    Programs still have to exist on the search path (add_binary creates
    executable placeholders), so resolution behaves like the real runner.
    Handlers are keyed by program name and may return None (success), an
    exit code, or a (returncode, stdout, stderr) tuple.
    """

    def __init__(self, bin_dir: Path) -> None:
        super().__init__()
        self.bin_dir = bin_dir
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self.versions: dict[str, str] = {}
        self.handlers: dict = {}

    def add_binary(self, name: str, version: str | None = None, directory: Path | None = None) -> Path:
        directory = directory or self.bin_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text("#!/bin/sh\nexit 0\n")
        path.chmod(0o755)
        self.versions[name] = version if version is not None else f"{name} 1.0.0"
        return path

    def on(self, program: str, handler) -> None:
        self.handlers[program] = handler

    def called(self, program: str) -> list[list[str]]:
        return [call for call in self.calls if call[0] == program]

    def _spawn(self, argv, env, input):
        command = list(argv)
        if Path(command[0]).name == "sudo":
            command = command[1:]
            while command and command[0].startswith("-"):
                command = command[1:]
        command[0] = Path(command[0]).name
        self.calls.append(command)
        self.inputs.append(input)

        program = command[0]
        if command[1:] == ["--version"] and program in self.versions:
            return subprocess.CompletedProcess(argv, 0, self.versions[program] + "\n", "")

        handler = self.handlers.get(program)
        if handler is None:
            return subprocess.CompletedProcess(argv, 127, "", f"{program}: no fake handler")

        outcome = handler(command, input)
        if outcome is None:
            outcome = (0, "", "")
        elif isinstance(outcome, int):
            outcome = (outcome, "", "")
        returncode, stdout, stderr = outcome
        return subprocess.CompletedProcess(argv, returncode, stdout, stderr)


class CapturingConsole(StatusConsole):
    """StatusConsole writing plain text to a buffer."""

    def __init__(self) -> None:
        self.buffer = io.StringIO()
        super().__init__(Console(file=self.buffer, width=200, color_system=None, highlight=False))

    @property
    def text(self) -> str:
        return self.buffer.getvalue()


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo CLI logging configuration between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def bin_dir(tmp_path):
    """Directory on the search path holding fake executables."""
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def home(tmp_path):
    """Home directory for tool directories and rc files."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def fake_runner(bin_dir):
    """Fake runner with curl already present."""
    runner = FakeRunner(bin_dir)
    runner.add_binary("curl", "curl 8.5.0 (x86_64-pc-linux-gnu)")
    return runner


@pytest.fixture
def search_path(bin_dir):
    return SearchPath((str(bin_dir),))


@pytest.fixture
def settings(home):
    return DevstrapSettings(
        _env_file=None,
        home=home,
        user="codespace",
        shell=ShellKind.BASH,
        use_sudo=False,
    )


@pytest.fixture
def status_console():
    return CapturingConsole()


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def http_routes():
    """
    URL -> response body (str or bytes) or status code.

    URLs without a route fail with a connection error.
    """
    return {}


@pytest.fixture
def requested_urls():
    return []


@pytest.fixture
def download_client(http_routes, requested_urls):
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested_urls.append(url)
        if url not in http_routes:
            raise httpx.ConnectError("network unreachable", request=request)
        body = http_routes[url]
        if isinstance(body, int):
            return httpx.Response(body, request=request)
        if isinstance(body, str):
            body = body.encode()
        return httpx.Response(200, content=body, request=request)

    client = DownloadClient(
        HTTPClientConfig(max_attempts=1),
        transport=httpx.MockTransport(handler),
    )
    yield client
    client.close()


@pytest.fixture
def install_context(settings, fake_runner, download_client, status_console, search_path):
    return InstallContext(
        settings=settings,
        runner=fake_runner,
        http=download_client,
        console=status_console,
        search_path=search_path,
        machine="x86_64",
    )


# ============================================================================
# Archive Fixtures
# ============================================================================


@pytest.fixture
def make_tar_gz():
    def build(members: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            for name, data in members.items():
                info = tarfile.TarInfo(name)
                info.size = len(data)
                info.mode = 0o755
                archive.addfile(info, io.BytesIO(data))
        return buffer.getvalue()

    return build


@pytest.fixture
def make_zip():
    def build(members: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for name, data in members.items():
                archive.writestr(name, data)
        return buffer.getvalue()

    return build
