"""Tests for LocalExecutor against the local /bin/sh."""

import os
from pathlib import Path

import pytest

from sshbox.errors import CommandError, CommandTimeoutError
from sshbox.services.local import LocalExecutor
from sshbox.utils.shell import Raw, flag


@pytest.fixture
def local() -> LocalExecutor:
    """Executor in safe mode."""
    return LocalExecutor()


@pytest.mark.asyncio
async def test_echo_returns_scalar(local: LocalExecutor) -> None:
    """Single-line output compares equal to a plain string."""
    result = await local.echo("hello")

    assert result == "hello"
    assert result.exit_code == 0
    assert result.producer is local


@pytest.mark.asyncio
async def test_safe_mode_does_not_expand_variables(local: LocalExecutor) -> None:
    """Quoted $HOME reaches echo literally."""
    result = await local.echo("$HOME")

    assert result == "$HOME"


@pytest.mark.asyncio
async def test_unsafe_mode_expands_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    """With safe mode off the shell expands $HOME."""
    monkeypatch.setenv("HOME", "/home/tester")
    local = LocalExecutor(safe=False)

    result = await local.echo("$HOME")

    assert result == "/home/tester"


@pytest.mark.asyncio
async def test_raw_fragment_bypasses_quoting(local: LocalExecutor) -> None:
    """Raw text is interpreted by the shell even in safe mode."""
    result = await local.echo("a", Raw("| tr a b"))

    assert result == "b"


@pytest.mark.asyncio
async def test_failing_command_raises(local: LocalExecutor, tmp_path: Path) -> None:
    """Non-zero exit raises CommandError carrying exit code and stderr."""
    with pytest.raises(CommandError) as exc_info:
        await local.cd(str(tmp_path)).ls("nofile")

    error = exc_info.value
    assert error.exit_code != 0
    assert "No such file or directory" in error.stderr
    assert error.host == "localhost"


@pytest.mark.asyncio
async def test_false_raises(local: LocalExecutor) -> None:
    with pytest.raises(CommandError) as exc_info:
        await local.false()

    assert exc_info.value.exit_code == 1


@pytest.mark.asyncio
async def test_cd_then_pwd(local: LocalExecutor, tmp_path: Path) -> None:
    """cd returns a handle whose commands run in the new directory."""
    target = tmp_path / "work"
    target.mkdir()

    result = await local.cd(str(target)).pwd()

    assert result == os.path.realpath(target) or result == str(target)


@pytest.mark.asyncio
async def test_multiline_output_iterates_lines(local: LocalExecutor, tmp_path: Path) -> None:
    for name in ("a.txt", "b.txt", "c.txt"):
        (tmp_path / name).write_text(name)

    result = await local.cd(str(tmp_path)).ls()

    assert list(result) == ["a.txt", "b.txt", "c.txt"]
    assert result.size == 3
    assert result.first == "a.txt"
    assert result.stdout == ["a.txt", "b.txt", "c.txt"]


@pytest.mark.asyncio
async def test_flags_and_options(local: LocalExecutor, tmp_path: Path) -> None:
    data = tmp_path / "data.txt"
    data.write_text("1\n2\n3\n4\n")

    result = await local.head(str(data), n=2)
    count = await local.wc(flag("l"), str(data))

    assert list(result) == ["1", "2"]
    assert str(count).split()[0] == "4"


@pytest.mark.asyncio
async def test_setenv_visible_to_commands(local: LocalExecutor) -> None:
    local.setenv("SSHBOX_TEST_VALUE", "hello world")

    result = await local.printenv("SSHBOX_TEST_VALUE")

    assert result == "hello world"


@pytest.mark.asyncio
async def test_getenv_puts_overlay_last(local: LocalExecutor) -> None:
    local.setenv("SSHBOX_FIRST", "1")
    local.setenv("SSHBOX_SECOND", "2")

    env = await local.getenv()

    assert env[-2:] == ["SSHBOX_FIRST=1", "SSHBOX_SECOND=2"]
    assert sum(1 for entry in env if entry.startswith("SSHBOX_FIRST=")) == 1


@pytest.mark.asyncio
async def test_constructor_env_and_cwd(tmp_path: Path) -> None:
    local = LocalExecutor(cwd=tmp_path, env={"SSHBOX_STAGE": "test"})

    assert local.cwd == str(tmp_path)
    assert await local.printenv("SSHBOX_STAGE") == "test"


@pytest.mark.asyncio
async def test_run_is_execute(local: LocalExecutor) -> None:
    assert await local.run("echo", "x") == await local.execute("echo", "x")


@pytest.mark.asyncio
async def test_timeout_kills_command() -> None:
    local = LocalExecutor(timeout=0.2)

    with pytest.raises(CommandTimeoutError):
        await local.sleep(5)


@pytest.mark.asyncio
async def test_allow_command_runs_unregistered_program(
    local: LocalExecutor, tmp_path: Path
) -> None:
    victim = tmp_path / "scratch"
    victim.write_text("x")

    await local.allow_command("rm", flag("f"), str(victim))

    assert not victim.exists()


@pytest.mark.asyncio
async def test_missing_directory_raises_command_error(
    local: LocalExecutor, tmp_path: Path
) -> None:
    """A vanished working directory fails like a remote cd would."""
    with pytest.raises(CommandError) as exc_info:
        await local.cd(str(tmp_path / "missing")).pwd()

    assert exc_info.value.exit_code != 0
    assert exc_info.value.host == "localhost"


@pytest.mark.asyncio
async def test_cd_into_directory_with_spaces(local: LocalExecutor, tmp_path: Path) -> None:
    target = tmp_path / "my dir"
    target.mkdir()

    assert await local.cd(str(target)).pwd() == str(target)


@pytest.mark.asyncio
async def test_command_substitution_in_flag_rejected(local: LocalExecutor) -> None:
    """Flag and option names cannot smuggle shell syntax past safe mode."""
    with pytest.raises(ValueError):
        await local.echo(flag("x$(echo injected)"))
    with pytest.raises(ValueError):
        await local.echo(**{"y=$(echo injected)": "v"})


class TestMetacharacters:
    """Glob, pipe and redirect behave per safe mode when executed."""

    @pytest.fixture
    def workdir(self, tmp_path: Path) -> Path:
        (tmp_path / "a.txt").write_text("a")
        return tmp_path

    @pytest.mark.asyncio
    async def test_unsafe_glob_expands(self, workdir: Path) -> None:
        local = LocalExecutor(safe=False, cwd=workdir)

        assert await local.ls("*.txt") == "a.txt"

    @pytest.mark.asyncio
    async def test_unsafe_pipe_runs(self, workdir: Path) -> None:
        local = LocalExecutor(safe=False, cwd=workdir)

        assert await local.echo("abc", "|", "tr", "a", "z") == "zbc"

    @pytest.mark.asyncio
    async def test_unsafe_redirect_writes_file(self, workdir: Path) -> None:
        local = LocalExecutor(safe=False, cwd=workdir)

        result = await local.echo("hi", ">", "out.txt")

        assert str(result) == ""
        assert (workdir / "out.txt").read_text() == "hi\n"

    @pytest.mark.asyncio
    async def test_safe_glob_is_literal(self, workdir: Path) -> None:
        local = LocalExecutor(cwd=workdir)

        assert await local.echo("*.txt") == "*.txt"
        with pytest.raises(CommandError):
            await local.ls("*.txt")

    @pytest.mark.asyncio
    async def test_safe_pipe_is_literal(self, workdir: Path) -> None:
        local = LocalExecutor(cwd=workdir)

        assert await local.echo("abc", "|", "tr", "a", "z") == "abc | tr a z"

    @pytest.mark.asyncio
    async def test_safe_redirect_is_literal(self, workdir: Path) -> None:
        local = LocalExecutor(cwd=workdir)

        assert await local.echo("hi", ">", "out.txt") == "hi > out.txt"
        assert not (workdir / "out.txt").exists()
