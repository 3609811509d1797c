"""
Unit tests for the uv, bun, Docker and Node.js installers.

Each test scripts the fake runner so that a given method either lays the
executable down where the real installer would or fails.
"""

import pytest

from devstrap.setup.tools import (
    BUN_ARCHES,
    BUN_INSTALL_SCRIPT,
    DOCKER_GPG_URL,
    DOCKER_KEYRING,
    DOCKER_SOURCES_LIST,
    NODESOURCE_SETUP_SCRIPT,
    UV_ARCHES,
    UV_INSTALL_SCRIPT,
    BunInstaller,
    DockerInstaller,
    NodeInstaller,
    UvInstaller,
    default_installers,
    node_major_version,
    release_arch,
)
from devstrap.utils.error_handling import InstallMethod

UV_RELEASE = "https://github.com/astral-sh/uv/releases/latest/download/uv-x86_64-unknown-linux-gnu.tar.gz"
BUN_RELEASE = "https://github.com/oven-sh/bun/releases/latest/download/bun-linux-x64.zip"


def installs(runner, name, version, directory=None):
    """Handler that lays down an executable, as a successful installer would."""

    def handler(command, stdin):
        runner.add_binary(name, version, directory)

    return handler


# ============================================================================
# uv
# ============================================================================


class TestUvInstaller:
    """Test the uv fallback chain: script -> pip -> release tarball."""

    def test_official_script(self, install_context, fake_runner, http_routes, home):
        http_routes[UV_INSTALL_SCRIPT] = "#!/bin/sh\necho uv installer\n"
        fake_runner.add_binary("sh")
        fake_runner.on(
            "sh",
            installs(fake_runner, "uv", "uv 0.4.18", home / ".local" / "bin"),
        )

        result = UvInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.OFFICIAL_SCRIPT
        assert fake_runner.inputs[0] == "#!/bin/sh\necho uv installer\n"
        assert str(home / ".cargo" / "bin") in install_context.search_path
        assert str(home / ".local" / "bin") in install_context.search_path

    def test_falls_back_to_pip(self, install_context, fake_runner, home):
        fake_runner.add_binary("pip3")
        fake_runner.on(
            "pip3",
            installs(fake_runner, "uv", "uv 0.4.18", home / ".local" / "bin"),
        )

        result = UvInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.PIP
        assert ["pip3", "install", "--user", "uv"] in fake_runner.calls
        assert result.attempts[0].success is False

    def test_pip_used_when_pip3_missing(self, install_context, fake_runner, home):
        fake_runner.add_binary("pip")
        fake_runner.on(
            "pip",
            installs(fake_runner, "uv", "uv 0.4.18", home / ".local" / "bin"),
        )

        result = UvInstaller().install(install_context)

        assert result.method == InstallMethod.PIP
        assert ["pip", "install", "--user", "uv"] in fake_runner.calls

    def test_falls_back_to_release(self, install_context, http_routes, make_tar_gz, home):
        http_routes[UV_RELEASE] = make_tar_gz({"uv-x86_64-unknown-linux-gnu/uv": b"#!/bin/sh\n"})

        result = UvInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.RELEASE_DOWNLOAD
        assert [a.success for a in result.attempts] == [False, False, True]
        assert (home / ".local" / "bin" / "uv").exists()

    def test_everything_fails(self, install_context, status_console):
        result = UvInstaller().install(install_context)

        assert result.success is False
        assert len(result.attempts) == 3
        assert result.attempts[1].error == "neither pip3 nor pip is available"
        assert "Failed to install Python's uv package manager" in status_console.text

    def test_progress_line(self, install_context, status_console):
        UvInstaller().install(install_context)
        assert status_console.text.startswith("[INFO] Installing Python's uv package manager...")

    def test_found_in_local_bin_from_earlier_run(self, install_context, fake_runner, home, requested_urls):
        fake_runner.add_binary("uv", "uv 0.4.18", home / ".local" / "bin")

        result = UvInstaller().install(install_context)

        assert result.already_installed is True
        assert requested_urls == []

    def test_already_installed(self, install_context, fake_runner, requested_urls):
        fake_runner.add_binary("uv", "uv 0.4.18")

        result = UvInstaller().install(install_context)

        assert result.already_installed is True
        assert requested_urls == []


# ============================================================================
# bun
# ============================================================================


class TestBunInstaller:
    """Test the bun fallback chain: script -> release zip -> npm."""

    def test_found_in_bun_dir_from_earlier_run(self, install_context, fake_runner, home, requested_urls):
        fake_runner.add_binary("bun", "1.1.30", home / ".bun" / "bin")

        result = BunInstaller().install(install_context)

        assert result.already_installed is True
        assert requested_urls == []

    def test_official_script(self, install_context, fake_runner, http_routes, home):
        http_routes[BUN_INSTALL_SCRIPT] = "#!/usr/bin/env bash\n# bun\n"
        fake_runner.add_binary("bash")
        fake_runner.on(
            "bash",
            installs(fake_runner, "bun", "1.1.30", home / ".bun" / "bin"),
        )

        result = BunInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.OFFICIAL_SCRIPT
        assert fake_runner.called("bash") == [["bash"]]
        assert install_context.search_path.entries[0] == str(home / ".bun" / "bin")

    def test_falls_back_to_release_zip(self, install_context, http_routes, make_zip, home):
        http_routes[BUN_RELEASE] = make_zip({"bun-linux-x64/bun": b"ELF"})

        result = BunInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.RELEASE_DOWNLOAD
        assert (home / ".bun" / "bin" / "bun").exists()

    def test_falls_back_to_npm(self, install_context, fake_runner):
        fake_runner.add_binary("npm", "10.8.2")
        fake_runner.on("npm", installs(fake_runner, "bun", "1.1.30"))

        result = BunInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.NPM
        assert ["npm", "install", "-g", "bun"] in fake_runner.calls

    def test_npm_missing(self, install_context):
        result = BunInstaller().install(install_context)

        assert result.success is False
        assert result.attempts[-1].error == "npm is not available"

    def test_release_for_arm(self, install_context, http_routes, make_zip, requested_urls):
        install_context.machine = "aarch64"
        url = "https://github.com/oven-sh/bun/releases/latest/download/bun-linux-aarch64.zip"
        http_routes[url] = make_zip({"bun-linux-aarch64/bun": b"ELF"})

        result = BunInstaller().install(install_context)

        assert result.success is True
        assert url in requested_urls


# ============================================================================
# Docker
# ============================================================================


@pytest.fixture
def docker_host(fake_runner, http_routes):
    """Fake host where the Docker apt repository install works."""
    for binary in ["apt-get", "mkdir", "gpg", "tee", "dpkg", "lsb_release", "groups", "usermod"]:
        fake_runner.add_binary(binary)

    def apt_get(command, stdin):
        if "docker-ce" in command:
            fake_runner.add_binary("docker", "Docker version 27.3.1, build ce12230")

    fake_runner.on("apt-get", apt_get)
    for binary in ["mkdir", "gpg", "tee", "usermod"]:
        fake_runner.on(binary, lambda command, stdin: None)
    fake_runner.on("dpkg", lambda command, stdin: (0, "amd64\n", ""))
    fake_runner.on("lsb_release", lambda command, stdin: (0, "jammy\n", ""))
    fake_runner.on("groups", lambda command, stdin: (0, "codespace sudo\n", ""))
    fake_runner.on("docker", lambda command, stdin: (1, "", "Cannot connect to the Docker daemon"))
    http_routes[DOCKER_GPG_URL] = "-----BEGIN PGP PUBLIC KEY BLOCK-----\n"
    return fake_runner


class TestDockerInstaller:
    """Test the Docker apt repository install."""

    def test_apt_repository_install(self, install_context, docker_host, status_console):
        result = DockerInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.APT_REPOSITORY

        programs = [call[0] for call in docker_host.calls if call[1:] != ["--version"]]
        assert programs[:5] == ["apt-get", "apt-get", "mkdir", "gpg", "dpkg"]
        assert ["gpg", "--batch", "--yes", "--dearmor", "-o", DOCKER_KEYRING] in docker_host.calls

        tee_index = docker_host.calls.index(["tee", DOCKER_SOURCES_LIST])
        assert docker_host.inputs[tee_index] == (
            f"deb [arch=amd64 signed-by={DOCKER_KEYRING}] "
            "https://download.docker.com/linux/ubuntu jammy stable\n"
        )
        gpg_index = docker_host.calls.index(["gpg", "--batch", "--yes", "--dearmor", "-o", DOCKER_KEYRING])
        assert docker_host.inputs[gpg_index].startswith("-----BEGIN PGP")

    def test_user_added_to_docker_group(self, install_context, docker_host, status_console):
        DockerInstaller().install(install_context)

        assert ["usermod", "-aG", "docker", "codespace"] in docker_host.calls
        assert "Added user to docker group. You may need to restart your session." in status_console.text

    def test_user_already_in_group(self, install_context, docker_host):
        docker_host.on("groups", lambda command, stdin: (0, "codespace docker\n", ""))

        DockerInstaller().install(install_context)

        assert docker_host.called("usermod") == []

    def test_group_change_failure_is_only_a_warning(self, install_context, docker_host, status_console):
        docker_host.on("usermod", lambda command, stdin: (6, "", "usermod: group 'docker' does not exist"))

        result = DockerInstaller().install(install_context)

        assert result.success is True
        assert "Could not add user to docker group" in status_console.text

    def test_progress_line(self, install_context, docker_host, status_console):
        DockerInstaller().install(install_context)
        assert status_console.text.startswith("[INFO] Setting up Docker...")

    def test_apt_failure(self, install_context, docker_host, status_console):
        docker_host.on("apt-get", lambda command, stdin: (100, "", "E: Unable to locate package"))

        result = DockerInstaller().install(install_context)

        assert result.success is False
        assert "Failed to install Docker, but continuing with other tools..." in status_console.text

    def test_present_with_daemon_stopped(self, install_context, docker_host, status_console):
        docker_host.add_binary("docker", "Docker version 27.3.1, build ce12230")

        result = DockerInstaller().install(install_context)

        assert result.already_installed is True
        assert docker_host.called("apt-get") == []
        assert "Docker daemon is not running, but this is normal in Codespaces" in status_console.text

    def test_present_with_daemon_running(self, install_context, docker_host, status_console):
        docker_host.add_binary("docker", "Docker version 27.3.1, build ce12230")
        docker_host.on("docker", lambda command, stdin: None)

        DockerInstaller().install(install_context)

        assert "Docker daemon is running" in status_console.text


# ============================================================================
# Node.js
# ============================================================================


@pytest.fixture
def nodesource_host(fake_runner, http_routes):
    """Fake host where the NodeSource setup and apt install work."""
    fake_runner.add_binary("bash")
    fake_runner.add_binary("apt-get")
    fake_runner.on("bash", lambda command, stdin: None)

    def apt_get(command, stdin):
        fake_runner.add_binary("node", "v22.11.0")
        fake_runner.add_binary("npm", "10.9.0")
        fake_runner.add_binary("npx", "10.9.0")

    fake_runner.on("apt-get", apt_get)
    http_routes[NODESOURCE_SETUP_SCRIPT] = "#!/bin/bash\n# nodesource\n"
    return fake_runner


class TestNodeInstaller:
    """Test the Node.js LTS install and version gate."""

    def test_recent_node_is_kept(self, install_context, fake_runner, status_console):
        fake_runner.add_binary("node", "v20.11.0")
        fake_runner.add_binary("npm", "10.2.4")

        result = NodeInstaller().install(install_context)

        assert result.already_installed is True
        assert "Node.js version is recent enough" in status_console.text
        assert "v20.11.0" in status_console.text

    def test_missing_node_installed_from_nodesource(self, install_context, nodesource_host):
        result = NodeInstaller().install(install_context)

        assert result.success is True
        assert result.method == InstallMethod.NODESOURCE
        assert nodesource_host.called("bash") == [["bash", "-"]]
        assert nodesource_host.inputs[nodesource_host.calls.index(["bash", "-"])] == "#!/bin/bash\n# nodesource\n"
        assert ["apt-get", "install", "-y", "nodejs"] in nodesource_host.calls

    def test_outdated_node_is_upgraded(self, install_context, nodesource_host, status_console):
        nodesource_host.add_binary("node", "v16.20.2")
        nodesource_host.add_binary("npm", "8.19.4")

        result = NodeInstaller().install(install_context)

        assert result.success is True
        assert result.already_installed is False
        assert "Node.js version is older than LTS, updating..." in status_console.text
        assert "v22.11.0" in status_console.text

    def test_minimum_major_is_configurable(self, install_context, fake_runner, settings):
        install_context.settings = settings.model_copy(update={"min_node_major": 22})
        fake_runner.add_binary("node", "v20.11.0")
        fake_runner.add_binary("npm", "10.2.4")

        result = NodeInstaller().install(install_context)

        assert result.already_installed is False

    def test_npx_required_after_install(self, install_context, nodesource_host):
        def apt_get_without_npx(command, stdin):
            nodesource_host.add_binary("node", "v22.11.0")
            nodesource_host.add_binary("npm", "10.9.0")

        nodesource_host.on("apt-get", apt_get_without_npx)

        result = NodeInstaller().install(install_context)

        assert result.success is False
        assert "npx not found after installation" in result.message

    def test_upgrade_that_keeps_old_node_fails(self, install_context, nodesource_host):
        nodesource_host.add_binary("node", "v16.20.2")
        nodesource_host.add_binary("npm", "8.19.4")
        nodesource_host.add_binary("npx", "8.19.4")
        nodesource_host.on("apt-get", lambda command, stdin: None)

        result = NodeInstaller().install(install_context)

        assert result.success is False
        assert result.method == InstallMethod.NODESOURCE
        assert "node v16.20.2 is older than v18" in result.message

    def test_progress_line(self, install_context, nodesource_host, status_console):
        NodeInstaller().install(install_context)
        assert status_console.text.startswith("[INFO] Setting up Node.js, npm, and npx...")

    def test_setup_script_unreachable(self, install_context, nodesource_host, http_routes):
        del http_routes[NODESOURCE_SETUP_SCRIPT]

        result = NodeInstaller().install(install_context)

        assert result.success is False
        assert nodesource_host.called("apt-get") == []

    def test_nodesource_runs_with_preserved_env_under_sudo(self, install_context, nodesource_host, settings):
        nodesource_host.add_binary("sudo")
        install_context.settings = settings.model_copy(update={"use_sudo": True})
        raw = []
        spawn = nodesource_host._spawn

        def recording_spawn(argv, env, input):
            raw.append(list(argv))
            return spawn(argv, env, input)

        nodesource_host._spawn = recording_spawn

        NodeInstaller().install(install_context)

        assert raw[0][1:] == ["-E", "bash", "-"]


# ============================================================================
# Helpers
# ============================================================================


@pytest.mark.parametrize(
    "version,expected",
    [
        ("v20.11.0", 20),
        ("18.19.1", 18),
        ("  v8.0.0\n", 8),
        ("node", None),
        ("", None),
        (None, None),
    ],
)
def test_node_major_version(version, expected):
    assert node_major_version(version) == expected


def test_release_arch():
    assert release_arch("x86_64", UV_ARCHES) == "x86_64"
    assert release_arch("arm64", UV_ARCHES) == "aarch64"
    assert release_arch("x86_64", BUN_ARCHES) == "x64"
    assert release_arch("riscv64", BUN_ARCHES) == "riscv64"


def test_default_installer_order():
    assert [installer.name for installer in default_installers()] == ["uv", "bun", "docker", "node"]
