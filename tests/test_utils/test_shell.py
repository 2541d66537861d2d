"""Tests for command line rendering."""

from pathlib import Path

import pytest

from sshbox.utils.shell import (
    Flag,
    Raw,
    build_command,
    build_prelude,
    flag,
    quote_dir,
    render_option,
)


class TestFlag:
    """Flag rendering."""

    def test_short_flag(self) -> None:
        assert Flag("l").render() == "-l"

    def test_long_flag(self) -> None:
        assert flag("all").render() == "--all"

    def test_underscores_become_dashes(self) -> None:
        assert flag("human_readable").render() == "--human-readable"

    def test_empty_flag(self) -> None:
        with pytest.raises(ValueError):
            Flag("").render()

    @pytest.mark.parametrize(
        "name",
        ["x$(echo owned)", "a;id", "`id`", "a b", "a=b", "-", "x\nid", "x\n"],
    )
    def test_shell_syntax_in_flag_rejected(self, name: str) -> None:
        with pytest.raises(ValueError, match="Invalid flag name"):
            Flag(name).render()

    def test_leading_dashes_accepted(self) -> None:
        assert Flag("--verbose").render() == "--verbose"


class TestBuildCommand:
    """Safe and unsafe rendering."""

    def test_program_only(self) -> None:
        assert build_command("ls") == "ls"

    def test_safe_quotes_metacharacters(self) -> None:
        line = build_command("echo", ["$HOME", "a b", "*.log", "|", ">out"])

        assert line == "echo '$HOME' 'a b' '*.log' '|' '>out'"

    def test_unsafe_passes_verbatim(self) -> None:
        line = build_command("echo", ["$HOME", "|", "wc"], safe=False)

        assert line == "echo $HOME | wc"

    def test_plain_words_unquoted(self) -> None:
        assert build_command("ls", ["/var/log"]) == "ls /var/log"

    def test_flags_keep_position(self) -> None:
        line = build_command("find", [".", flag("name"), "*.py"])

        assert line == "find . --name '*.py'"

    def test_raw_is_never_quoted(self) -> None:
        assert build_command("ls", [Raw("*.txt")]) == "ls *.txt"

    def test_numbers_and_paths(self) -> None:
        assert build_command("head", [Path("/tmp/x"), 3]) == "head /tmp/x 3"

    def test_options_before_positionals(self) -> None:
        line = build_command("head", ["file.txt"], {"n": 5})

        assert line == "head -n 5 file.txt"

    def test_long_option(self) -> None:
        line = build_command("ls", ["/tmp"], {"color": "never", "all": True, "x": None})

        assert line == "ls --color=never --all /tmp"

    def test_option_values_quoted(self) -> None:
        assert render_option("format", "%s %n") == ["--format='%s %n'"]

    def test_option_false_omitted(self) -> None:
        assert render_option("verbose", False) == []

    @pytest.mark.parametrize("key", ["y=$(echo owned)", "a;id", "`id`"])
    def test_shell_syntax_in_option_key_rejected(self, key: str) -> None:
        with pytest.raises(ValueError):
            build_command("echo", [], {key: "v"})

    def test_bool_argument_rejected(self) -> None:
        with pytest.raises(TypeError):
            build_command("echo", [True])

    def test_object_argument_rejected(self) -> None:
        with pytest.raises(TypeError):
            build_command("echo", [object()])

    @pytest.mark.parametrize("name", ["", "two words", "bad\x00name"])
    def test_invalid_program_name(self, name: str) -> None:
        with pytest.raises(ValueError):
            build_command(name)


class TestPrelude:
    """Working directory and environment prefix."""

    def test_empty(self) -> None:
        assert build_prelude(None, {}) == ""

    def test_cwd_only(self) -> None:
        assert build_prelude("/var/www") == "cd /var/www && "

    def test_cwd_with_spaces(self) -> None:
        assert build_prelude("/srv/my app") == "cd '/srv/my app' && "

    def test_env_in_order(self) -> None:
        prelude = build_prelude("/tmp", {"B": "2", "A": "x y"})

        assert prelude == "cd /tmp && export B=2 A='x y' && "

    def test_home_dir_expands(self) -> None:
        assert quote_dir("~") == "~"
        assert quote_dir("~/my dir") == "~/'my dir'"
