from __future__ import annotations

from datetime import timedelta
from io import StringIO

from rich.console import Console

from staleware.config.defaults import default_config
from staleware.models.enums import Severity
from staleware.models.usage import RankedItem
from staleware.services.aggregator import build_aggregator
from staleware.services.recommendations import generate_recommendations
from staleware.services.summary import render_recommendations
from tests.factories import MB, NOW, make_cli
from tests.fs_mock import MemoryFileSystem


def _epoch(days_ago: int) -> int:
    return int((NOW - timedelta(days=days_ago)).timestamp())


class TestFullPipeline:
    def test_history_to_ranked_recommendations(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file(
            "/mock/home/.zsh_history",
            content=f": {_epoch(2)}:0;git status\n: {_epoch(120)}:0;sudo wget http://x\n",
        )
        fs.add_file("/mock/home/.bash_history", content=f"#{_epoch(40)}\njq . data.json\n")
        fs.add_file("/mock/home/.local/share/fish/fish_history", content=f"- cmd: git log\n  when: {_epoch(1)}\n")

        items = [
            make_cli("git", "/usr/local/bin/git", size=40 * MB),
            make_cli("wget", "/usr/local/bin/wget", size=2 * MB),
            make_cli("jq", "/usr/local/bin/jq", size=1 * MB),
            make_cli("imagemagick", None, size=300 * MB),
            make_cli("libyaml", None, size=1 * MB),
        ]

        config = default_config()
        estimates = build_aggregator(config, fs=fs).aggregate_all(items, workers=config.workers)
        by_name = {item.name: est for item, est in zip(items, estimates, strict=True)}

        assert by_name["git"].usage_count == 2
        assert by_name["git"].last_used is not None
        assert by_name["wget"].usage_count == 1
        assert by_name["imagemagick"].signals == ()

        ranked = [RankedItem.from_estimate(item, est) for item, est in zip(items, estimates, strict=True)]
        recs = generate_recommendations(ranked, {"libyaml"}, NOW, config.policy)

        assert [(r.item_name, r.severity) for r in recs] == [
            ("libyaml", Severity.SAFE),
            ("imagemagick", Severity.REVIEW),
            ("wget", Severity.REVIEW),
            ("jq", Severity.WARNING),
        ]

        console = Console(file=StringIO(), force_terminal=True, width=200)
        render_recommendations(console, recs)
        out = console.file.getvalue()  # type: ignore[attr-defined]
        assert "imagemagick" in out
        assert "libyaml" in out
