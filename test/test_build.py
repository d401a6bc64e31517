"""
Tests for toolchain definitions and the build runner.
"""

import os
import threading
from pathlib import Path

import pytest

from toolcache.build import TOOLCHAINS, BuildRunner, Toolchain, get_toolchain, toolchain_env
from toolcache.errors import BuildError, CancelledError, ConfigurationError
from toolcache.layout import CacheLayout
from toolcache.platforms import PLATFORM_LINUX_AMD64

SH = Path("/bin/sh")


def _shell(script: str, **kwargs) -> Toolchain:
    return Toolchain(name="sh", binary="bin/sh", command=["{bin}", "-c", script], **kwargs)


class TestToolchain:
    """Toolchain command construction."""

    def test_go_command(self):
        command = get_toolchain("go").build_command(
            Path("/cache/bin/go"), "golang.org/x/tools/cmd/stringer", "v0.31.0", Path("/out"))
        assert command == ["/cache/bin/go", "install", "golang.org/x/tools/cmd/stringer@v0.31.0"]

    def test_cargo_command(self):
        toolchain = get_toolchain("cargo")
        command = toolchain.build_command(Path("/cache/bin/cargo"), "ripgrep", "14.1.0", Path("/out"))

        assert command == ["/cache/bin/cargo", "install", "--locked", "--root", "/out",
                           "--version", "14.1.0", "ripgrep"]
        assert toolchain.output_path(Path("/out"), "ripgrep") == Path("/out/bin/ripgrep")

    def test_unknown_toolchain(self):
        with pytest.raises(ConfigurationError, match="Unsupported toolchain"):
            get_toolchain("npm")

    def test_toolchain_env(self, tmp_path):
        layout = CacheLayout(tmp_path)
        env = toolchain_env(layout, TOOLCHAINS["go"], PLATFORM_LINUX_AMD64, base={"PATH": "/usr/bin"})

        state = tmp_path / "toolchains" / "go" / "linux.amd64"
        assert env["GOPATH"] == str(state / "gopath")
        assert env["GOCACHE"] == str(state / "gocache")
        assert env["GOMODCACHE"] == str(state / "gopath" / "pkg" / "mod")
        assert (state / "gocache").is_dir()
        assert env["PATH"] == os.pathsep.join([str(tmp_path / "bin" / "linux.amd64" / "bin"), "/usr/bin"])

    def test_toolchain_env_does_not_modify_base(self, tmp_path):
        base = {"PATH": "/usr/bin"}
        toolchain_env(CacheLayout(tmp_path), TOOLCHAINS["cargo"], PLATFORM_LINUX_AMD64, base=base)
        assert base == {"PATH": "/usr/bin"}


class TestBuildRunner:
    """Running build commands."""

    def setup_method(self):
        self.runner = BuildRunner(timeout=10, poll_interval=0.05)
        self.env = dict(os.environ)

    def test_successful_build(self, tmp_path):
        toolchain = _shell("printf built > {output}/{package}")

        binary = self.runner.run(toolchain, SH, "example", "1.0", tmp_path, self.env)

        assert binary == tmp_path / "example"
        assert binary.read_text() == "built"

    def test_output_env(self, tmp_path):
        toolchain = _shell('printf built > "$OUT/tool"', output_env="OUT")

        binary = self.runner.run(toolchain, SH, "example.com/cmd/tool", "1.0", tmp_path, self.env)

        assert binary == tmp_path / "tool"

    def test_non_zero_exit(self, tmp_path):
        toolchain = _shell("echo compile error; exit 3")

        with pytest.raises(BuildError) as exc_info:
            self.runner.run(toolchain, SH, "example", "1.0", tmp_path, self.env)

        assert "return code 3" in str(exc_info.value)
        assert "compile error" in str(exc_info.value)

    def test_missing_output(self, tmp_path):
        with pytest.raises(BuildError, match="not found"):
            self.runner.run(_shell("true"), SH, "example", "1.0", tmp_path, self.env)

    def test_missing_toolchain_binary(self, tmp_path):
        with pytest.raises(BuildError, match="Failed to start"):
            self.runner.run(_shell("true"), tmp_path / "nope", "example", "1.0", tmp_path, self.env)

    def test_timeout(self, tmp_path):
        runner = BuildRunner(timeout=0.3, poll_interval=0.05)

        with pytest.raises(BuildError, match="timed out"):
            runner.run(_shell("sleep 30"), SH, "example", "1.0", tmp_path, self.env)

    def test_cancel(self, tmp_path):
        cancel = threading.Event()
        timer = threading.Timer(0.2, cancel.set)
        timer.start()
        try:
            with pytest.raises(CancelledError):
                self.runner.run(_shell("sleep 30"), SH, "example", "1.0", tmp_path, self.env, cancel)
        finally:
            timer.cancel()
