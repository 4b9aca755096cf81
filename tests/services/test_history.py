from __future__ import annotations

import pytest

from staleware.config.schema import HistoryLog
from staleware.models.enums import HistoryFormat
from staleware.models.usage import HistoryEntry
from staleware.services.history import (
    epoch_to_utc,
    invokes_binary,
    load_history,
    merge_history,
    parse_history,
    parse_history_text,
)
from tests.factories import at
from tests.fs_mock import MemoryFileSystem


class TestZshFormat:
    def test_two_entries(self) -> None:
        entries = parse_history_text(": 1000:0;ls -la\n: 1100:0;git status\n", HistoryFormat.ZSH)
        assert [e.command for e in entries] == ["ls -la", "git status"]
        assert [e.timestamp for e in entries] == [at(1000), at(1100)]

    def test_continuation_lines_joined(self) -> None:
        text = ": 1000:0;for f in *; do\\\n  echo $f\\\ndone\n: 1100:0;pwd\n"
        entries = parse_history_text(text, HistoryFormat.ZSH)
        assert len(entries) == 2
        assert entries[0].command == "for f in *; do\\\n  echo $f\\\ndone"
        assert entries[1].command == "pwd"

    def test_leading_continuation_dropped(self) -> None:
        entries = parse_history_text("stray\n: 1000:0;ls\n", HistoryFormat.ZSH)
        assert [e.command for e in entries] == ["ls"]

    def test_nonzero_duration_flag(self) -> None:
        entries = parse_history_text(": 1000:12;make\n", HistoryFormat.ZSH)
        assert entries == [HistoryEntry("make", at(1000))]

    def test_overflowing_epoch_keeps_entry_without_timestamp(self) -> None:
        entries = parse_history_text(": 99999999999999999999:0;ls\n", HistoryFormat.ZSH)
        assert entries == [HistoryEntry("ls", None)]

    def test_form_feed_is_not_a_continuation(self) -> None:
        entries = parse_history_text(": 1000:0;echo a\x0cb\n", HistoryFormat.ZSH)
        assert entries == [HistoryEntry("echo a\x0cb", at(1000))]


class TestBashFormat:
    def test_plain_lines_have_no_timestamp(self) -> None:
        entries = parse_history_text("ls\ngit status\n", HistoryFormat.BASH)
        assert entries == [HistoryEntry("ls"), HistoryEntry("git status")]

    def test_stamp_applies_to_next_line_only(self) -> None:
        entries = parse_history_text("#1500\nnpm install\nnpm test\n", HistoryFormat.BASH)
        assert entries == [HistoryEntry("npm install", at(1500)), HistoryEntry("npm test", None)]

    def test_non_numeric_comment_is_a_command(self) -> None:
        entries = parse_history_text("# just a note\n", HistoryFormat.BASH)
        assert entries == [HistoryEntry("# just a note")]

    def test_blank_lines_skipped(self) -> None:
        entries = parse_history_text("#1500\n\nls\n", HistoryFormat.BASH)
        assert entries == [HistoryEntry("ls", at(1500))]

    @pytest.mark.parametrize("separator", ["\x0b", "\x0c", "\x1c", "\x1d", "\x1e", "\x85", "\u2028", "\u2029"])
    def test_only_newlines_split_entries(self, separator: str) -> None:
        entries = parse_history_text(f"#1000\nprintf 'a{separator}b'\n", HistoryFormat.BASH)
        assert entries == [HistoryEntry(f"printf 'a{separator}b'", at(1000))]

    def test_crlf_line_endings(self) -> None:
        entries = parse_history_text("#1000\r\nls\r\npwd\r\n", HistoryFormat.BASH)
        assert entries == [HistoryEntry("ls", at(1000)), HistoryEntry("pwd")]


class TestFishFormat:
    def test_pairs_emitted(self) -> None:
        text = "- cmd: ls -la\n  when: 1000\n- cmd: git status\n  when: 1100\n"
        entries = parse_history_text(text, HistoryFormat.FISH)
        assert entries == [HistoryEntry("ls -la", at(1000)), HistoryEntry("git status", at(1100))]

    def test_unpaired_trailing_cmd_discarded(self) -> None:
        text = "- cmd: ls\n  when: 1000\n- cmd: rm -rf build\n"
        entries = parse_history_text(text, HistoryFormat.FISH)
        assert [e.command for e in entries] == ["ls"]

    def test_later_cmd_replaces_pending(self) -> None:
        entries = parse_history_text("- cmd: a\n- cmd: b\n  when: 1000\n", HistoryFormat.FISH)
        assert entries == [HistoryEntry("b", at(1000))]

    def test_bad_epoch_still_emits(self) -> None:
        entries = parse_history_text("- cmd: ls\n  when: soon\n", HistoryFormat.FISH)
        assert entries == [HistoryEntry("ls", None)]

    def test_paths_block_ignored(self) -> None:
        text = "- cmd: vim a.txt\n  when: 1000\n  paths:\n    - a.txt\n"
        entries = parse_history_text(text, HistoryFormat.FISH)
        assert entries == [HistoryEntry("vim a.txt", at(1000))]


class TestParseHistory:
    def test_missing_file_is_empty(self) -> None:
        assert parse_history("~/.zsh_history", HistoryFormat.ZSH, MemoryFileSystem()) == []

    def test_unreadable_file_is_empty(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/mock/home/.bash_history", content="ls\n", unreadable=True)
        assert parse_history("~/.bash_history", HistoryFormat.BASH, fs) == []

    def test_expands_home(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/mock/home/.bash_history", content="ls\n")
        assert parse_history("~/.bash_history", HistoryFormat.BASH, fs) == [HistoryEntry("ls")]


class TestMergeHistory:
    def test_newest_first_untimed_last(self) -> None:
        merged = merge_history(
            [
                [HistoryEntry("a", at(100)), HistoryEntry("b")],
                [HistoryEntry("c", at(300)), HistoryEntry("d", at(200))],
            ]
        )
        assert [e.command for e in merged] == ["c", "d", "a", "b"]

    def test_order_independent_of_batch_order(self) -> None:
        one = [HistoryEntry("x", at(5)), HistoryEntry("y")]
        two = [HistoryEntry("z", at(5)), HistoryEntry("w")]
        assert merge_history([one, two]) == merge_history([two, one])

    def test_load_history_combines_formats(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/h/zsh", content=": 1000:0;git pull\n")
        fs.add_file("/h/fish", content="- cmd: git push\n  when: 2000\n")
        logs = [HistoryLog("/h/zsh", HistoryFormat.ZSH), HistoryLog("/h/fish", HistoryFormat.FISH)]
        assert [e.command for e in load_history(logs, fs)] == ["git push", "git pull"]


class TestInvokesBinary:
    @pytest.mark.parametrize(
        ("command", "name", "expected"),
        [
            ("sudo npm install", "npm", True),
            ("git status", "npm", False),
            ("git status", "git", True),
            ("GIT status", "git", True),
            ("cat log | grep error", "grep", True),
            ("npm/bin/thing", "npm", True),
            ("npmx run", "npm", False),
            ("echo hello", "hello", True),
            ("", "git", False),
        ],
    )
    def test_cases(self, command: str, name: str, expected: bool) -> None:
        assert invokes_binary(HistoryEntry(command), name) is expected


class TestEpoch:
    def test_valid(self) -> None:
        assert epoch_to_utc("1000") == at(1000)

    def test_garbage(self) -> None:
        assert epoch_to_utc("12ab") is None


class TestBaseCommand:
    def test_first_token(self) -> None:
        assert HistoryEntry("git status --short").base_command == "git"

    def test_blank(self) -> None:
        assert HistoryEntry("   ").base_command is None
