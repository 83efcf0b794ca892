from __future__ import annotations

from pathlib import Path

import pytest

from tabscope.cli import build_parser, main


def test_parser_options() -> None:
    args = build_parser().parse_args(
        ["--bridge-url", "http://localhost:1", "--config", "c.toml", "--log-level", "debug"]
    )
    assert args.bridge_url == "http://localhost:1"
    assert args.config == Path("c.toml")
    assert args.log_level == "debug"


def test_bad_config_exits_with_usage_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "config.toml"
    path.write_text("debounce_delay = ", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        main(["--config", str(path)])

    assert exc.value.code == 2
    assert capsys.readouterr().err.startswith("tabscope: Failed to read")
