"""Tests for the StringIO-backed console helpers."""

from learnmap.output.console import create_console, get_output, style_for_level


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console(no_color=True, width=40)
        console.print("[lm.ok]OK[/lm.ok] done")
        assert get_output(console) == "OK done\n"

    def test_level_styles(self) -> None:
        assert style_for_level("Advanced") == "lm.level.advanced"
        assert style_for_level("Unknown") == ""
