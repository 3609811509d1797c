"""
Installers for the tools devstrap provisions.

Each installer tries the upstream installer first and falls back to package
managers or direct release downloads:

    uv      official script -> pip --user -> GitHub release tarball
    bun     official script -> GitHub release zip -> npm -g
    docker  Docker apt repository
    node    NodeSource LTS apt repository
"""

from __future__ import annotations

import re

import structlog

from devstrap.setup.checker import ComponentStatus, check_docker
from devstrap.setup.installer import (
    InstallContext,
    InstallStep,
    ToolInstaller,
    install_release_binary,
    run_remote_script,
)
from devstrap.utils.error_handling import InstallMethod, InstallMethodError

logger = structlog.get_logger(__name__)

UV_INSTALL_SCRIPT = "https://astral.sh/uv/install.sh"
UV_RELEASE_URL = "https://github.com/astral-sh/uv/releases/latest/download/{asset}.tar.gz"
BUN_INSTALL_SCRIPT = "https://bun.sh/install"
BUN_RELEASE_URL = "https://github.com/oven-sh/bun/releases/latest/download/{asset}.zip"
DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_APT_REPO = "https://download.docker.com/linux/ubuntu"
DOCKER_KEYRING_DIR = "/etc/apt/keyrings"
DOCKER_KEYRING = f"{DOCKER_KEYRING_DIR}/docker.gpg"
DOCKER_SOURCES_LIST = "/etc/apt/sources.list.d/docker.list"
DOCKER_PREREQUISITES = ["ca-certificates", "curl", "gnupg", "lsb-release"]
DOCKER_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]
NODESOURCE_SETUP_SCRIPT = "https://deb.nodesource.com/setup_lts.x"

# uname -m -> release asset architecture
UV_ARCHES = {"x86_64": "x86_64", "aarch64": "aarch64", "arm64": "aarch64"}
BUN_ARCHES = {"x86_64": "x64", "aarch64": "aarch64", "arm64": "aarch64"}


def release_arch(machine: str, mapping: dict[str, str]) -> str:
    """Map a machine name to a release architecture, passing unknown ones through."""
    arch = mapping.get(machine)
    if arch is None:
        logger.warning("unsupported_architecture", machine=machine)
        return machine
    return arch


class UvInstaller(ToolInstaller):
    """Python's uv package manager."""

    name = "uv"
    display_name = "Python's uv package manager"
    binaries = ("uv",)
    tool_dirs = (".cargo/bin", ".local/bin")

    def steps(self, ctx: InstallContext) -> list[InstallStep]:
        return [
            InstallStep(InstallMethod.OFFICIAL_SCRIPT, "official installation script", self._official_script),
            InstallStep(InstallMethod.PIP, "installation via pip", self._pip),
            InstallStep(InstallMethod.RELEASE_DOWNLOAD, "direct download from GitHub releases", self._release),
        ]

    def _official_script(self, ctx: InstallContext) -> None:
        run_remote_script(ctx, UV_INSTALL_SCRIPT, ["sh"])

    def _pip(self, ctx: InstallContext) -> None:
        pip = "pip3" if ctx.which("pip3") else "pip" if ctx.which("pip") else None
        if pip is None:
            raise InstallMethodError("neither pip3 nor pip is available")
        ctx.run([pip, "install", "--user", "uv"])
        ctx.add_to_path(ctx.home / ".local" / "bin")

    def _release(self, ctx: InstallContext) -> None:
        asset = f"uv-{release_arch(ctx.machine, UV_ARCHES)}-unknown-linux-gnu"
        install_release_binary(
            ctx,
            UV_RELEASE_URL.format(asset=asset),
            f"{asset}/uv",
            ctx.home / ".local" / "bin" / "uv",
        )
        ctx.add_to_path(ctx.home / ".local" / "bin")


class BunInstaller(ToolInstaller):
    """bun JavaScript runtime and package manager."""

    name = "bun"
    display_name = "bun (JavaScript runtime and package manager)"
    binaries = ("bun",)
    tool_dirs = (".bun/bin",)

    def steps(self, ctx: InstallContext) -> list[InstallStep]:
        return [
            InstallStep(InstallMethod.OFFICIAL_SCRIPT, "official bun installation script", self._official_script),
            InstallStep(InstallMethod.RELEASE_DOWNLOAD, "direct download from GitHub releases", self._release),
            InstallStep(InstallMethod.NPM, "installation via npm", self._npm),
        ]

    def _official_script(self, ctx: InstallContext) -> None:
        run_remote_script(ctx, BUN_INSTALL_SCRIPT, ["bash"])

    def _release(self, ctx: InstallContext) -> None:
        asset = f"bun-linux-{release_arch(ctx.machine, BUN_ARCHES)}"
        install_release_binary(
            ctx,
            BUN_RELEASE_URL.format(asset=asset),
            f"{asset}/bun",
            ctx.home / ".bun" / "bin" / "bun",
        )

    def _npm(self, ctx: InstallContext) -> None:
        if not ctx.which("npm"):
            raise InstallMethodError("npm is not available")
        ctx.run(["npm", "install", "-g", "bun"])


class DockerInstaller(ToolInstaller):
    """Docker Engine from Docker's apt repository."""

    name = "docker"
    display_name = "Docker"
    binaries = ("docker",)
    action_verb = "Setting up"

    def report_present(self, ctx: InstallContext) -> None:
        ctx.console.warning("Docker is already available")
        check = check_docker(ctx.runner, ctx.search_path)
        if check.details.get("version"):
            ctx.console.detail(check.details["version"])

        if check.status == ComponentStatus.OK:
            ctx.console.success("Docker daemon is running")
        else:
            ctx.console.warning("Docker daemon is not running, but this is normal in Codespaces")
            ctx.console.info("Docker commands will work when containers are started")

    def steps(self, ctx: InstallContext) -> list[InstallStep]:
        return [
            InstallStep(InstallMethod.APT_REPOSITORY, "Docker apt repository", self._apt_repository),
        ]

    def _apt_repository(self, ctx: InstallContext) -> None:
        ctx.run_privileged(["apt-get", "update"])
        ctx.run_privileged(["apt-get", "install", "-y", *DOCKER_PREREQUISITES])

        ctx.run_privileged(["mkdir", "-p", DOCKER_KEYRING_DIR])
        key = ctx.http.fetch_text(DOCKER_GPG_URL)
        ctx.run_privileged(["gpg", "--batch", "--yes", "--dearmor", "-o", DOCKER_KEYRING], input=key)

        arch = ctx.run(["dpkg", "--print-architecture"]).stdout.strip()
        codename = ctx.run(["lsb_release", "-cs"]).stdout.strip()
        source = f"deb [arch={arch} signed-by={DOCKER_KEYRING}] {DOCKER_APT_REPO} {codename} stable\n"
        ctx.run_privileged(["tee", DOCKER_SOURCES_LIST], input=source)

        ctx.run_privileged(["apt-get", "update"])
        ctx.run_privileged(["apt-get", "install", "-y", *DOCKER_PACKAGES])

    def after_install(self, ctx: InstallContext) -> None:
        try:
            groups = ctx.run(["groups"], check=False).stdout.split()
            if "docker" in groups:
                return
            if not ctx.settings.user:
                ctx.console.warning("USER is not set, not adding anyone to the docker group")
                return
            ctx.run_privileged(["usermod", "-aG", "docker", ctx.settings.user])
        except InstallMethodError as e:
            ctx.console.warning(f"Could not add user to docker group: {e.message}")
            return
        ctx.console.warning("Added user to docker group. You may need to restart your session.")


class NodeInstaller(ToolInstaller):
    """Node.js LTS with npm and npx from NodeSource."""

    name = "node"
    display_name = "Node.js, npm, and npx"
    binaries = ("node", "npm")
    verify_binaries = ("node", "npm", "npx")
    action_verb = "Setting up"

    def is_present(self, ctx: InstallContext) -> bool:
        if not super().is_present(ctx):
            return False

        version = ctx.probe("node").version
        major = node_major_version(version)
        if major is not None and major >= ctx.settings.min_node_major:
            return True

        ctx.console.info("Node.js and npm are already installed")
        self._print_versions(ctx, self.binaries)
        ctx.console.warning("Node.js version is older than LTS, updating...")
        logger.info("node_outdated", version=version, minimum=ctx.settings.min_node_major)
        return False

    def report_present(self, ctx: InstallContext) -> None:
        ctx.console.info("Node.js and npm are already installed")
        self._print_versions(ctx, self.binaries)
        ctx.console.success("Node.js version is recent enough")

    def verify(self, ctx: InstallContext) -> str | None:
        problem = super().verify(ctx)
        if problem is not None:
            return problem

        version = ctx.probe("node").version
        major = node_major_version(version)
        if major is None or major < ctx.settings.min_node_major:
            return f"node {version or '(unknown version)'} is older than v{ctx.settings.min_node_major}"
        return None

    def steps(self, ctx: InstallContext) -> list[InstallStep]:
        return [
            InstallStep(InstallMethod.NODESOURCE, "NodeSource LTS repository", self._nodesource),
        ]

    def _nodesource(self, ctx: InstallContext) -> None:
        run_remote_script(ctx, NODESOURCE_SETUP_SCRIPT, ["bash", "-"], privileged=True, preserve_env=True)
        ctx.run_privileged(["apt-get", "install", "-y", "nodejs"])


def node_major_version(version: str | None) -> int | None:
    """Extract the major version from `node --version` output such as 'v20.11.0'."""
    if not version:
        return None
    match = re.match(r"v?(\d+)", version.strip())
    return int(match.group(1)) if match else None


def default_installers() -> list[ToolInstaller]:
    """Installers in the order they run."""
    return [UvInstaller(), BunInstaller(), DockerInstaller(), NodeInstaller()]
