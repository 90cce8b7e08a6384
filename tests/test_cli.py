from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from adoc_convert import cli
from adoc_convert import config as cfg
from adoc_convert.core import workspace as workspace_mod

from fixtures import RecordingRunner


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "load_dotenv", lambda: False)
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(tmp_path / "ws"))
    for key in list(os.environ):
        if key.startswith(cfg.ENV_PREFIX) and key != workspace_mod.WORKSPACE_ENV:
            monkeypatch.delenv(key, raising=False)
    yield
    logger = logging.getLogger("adoc_convert")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def fake_runner(monkeypatch) -> RecordingRunner:
    runner = RecordingRunner()
    monkeypatch.setattr(cli, "_build_runner", lambda: runner)
    return runner


def _source(tmp_path: Path) -> Path:
    source = tmp_path / "docs" / "guide.txt"
    source.parent.mkdir(parents=True)
    source.write_text("= Guide\n", encoding="utf-8")
    return source


def test_no_arguments_prints_hint(capsys, fake_runner):
    code = cli.main([])

    captured = capsys.readouterr()
    assert code == cli.EXIT_HELP
    assert '"help"' in captured.out
    assert fake_runner.attempts == []


@pytest.mark.parametrize("word", ["help", "HELP", "--help"])
def test_help_lists_formats_without_converting(capsys, fake_runner, word):
    code = cli.main([word])

    captured = capsys.readouterr()
    assert code == -1
    assert "input_file [-to <format>] [output_file]" in captured.out
    for name in ("html5", "docx", "pdf", "markdown_strict", "docbook"):
        assert name in captured.out
    assert fake_runner.attempts == []


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["guide.txt"], "format or output file"),
        (["guide", "-to", "html"], "extension for input file"),
        (["guide.txt", "-to", "bogus"], '"help"'),
        (["guide.txt", "-to"], "could not read arguments"),
        (["guide.txt", "-t", "pdf"], "unexpected option '-t'"),
        (["guide.txt", "-to=pdf"], "could not read arguments"),
    ],
)
def test_usage_errors_return_one_without_side_effects(
    monkeypatch, capsys, fake_runner, argv, message
):
    def fail_load_config(**_):
        raise AssertionError("config must not be loaded")

    monkeypatch.setattr(cli, "load_config", fail_load_config)

    code = cli.main(argv)

    captured = capsys.readouterr()
    assert code == 1
    assert captured.err.startswith("error: ")
    assert message in captured.err
    assert fake_runner.attempts == []


def test_direct_conversion_end_to_end(tmp_path, capsys, fake_runner):
    source = _source(tmp_path)

    code = cli.main([str(source), "-to", "html"])

    captured = capsys.readouterr()
    assert code == 0
    assert len(fake_runner.started) == 1
    assert fake_runner.started[0].executable == "asciidoc"
    assert str(source.with_suffix(".html")) in captured.out
    assert captured.err == ""

    log_file = tmp_path / "ws" / "logs" / "adoc_convert.log"
    records = [
        json.loads(line)
        for line in log_file.read_text(encoding="utf-8").splitlines()
    ]
    assert records[-1]["message"] == "Finished conversion"


def test_chained_conversion_uses_config_file(tmp_path, capsys, fake_runner):
    source = _source(tmp_path)
    config_file = tmp_path / "custom.toml"
    config_file.write_text(
        '[pandoc]\npath = "my-pandoc"\nextra_args = "--toc"\n',
        encoding="utf-8",
    )

    code = cli.main(
        [str(source), str(tmp_path / "out.docx"), "--config", str(config_file)]
    )

    assert code == 0
    assert [call.executable for call in fake_runner.started] == [
        "asciidoc",
        "my-pandoc",
    ]
    assert "--toc" in fake_runner.started[1].args
    capsys.readouterr()


def test_launch_failure_returns_one(tmp_path, capsys, monkeypatch):
    runner = RecordingRunner(fail_on={"asciidoc"})
    monkeypatch.setattr(cli, "_build_runner", lambda: runner)
    source = _source(tmp_path)

    code = cli.main([str(source), "-to", "docx"])

    captured = capsys.readouterr()
    assert code == 1
    assert "error: failed to start asciidoc" in captured.err
    assert [call.executable for call in runner.attempts] == ["asciidoc"]


def test_nonzero_status_is_reported_as_warning(tmp_path, capsys, monkeypatch):
    runner = RecordingRunner(statuses={"asciidoc": 2})
    monkeypatch.setattr(cli, "_build_runner", lambda: runner)
    source = _source(tmp_path)

    code = cli.main([str(source), "-to", "xhtml11"])

    captured = capsys.readouterr()
    assert code == 0
    assert "warning: asciidoc exited with status 2" in captured.err


def test_config_errors_return_one(tmp_path, capsys, fake_runner):
    source = _source(tmp_path)

    code = cli.main(
        [str(source), "-to", "pdf", "--config", str(tmp_path / "missing.toml")]
    )

    captured = capsys.readouterr()
    assert code == 1
    assert "Config file not found" in captured.err
    assert fake_runner.attempts == []


def test_log_level_option_reaches_config(tmp_path, monkeypatch, fake_runner):
    captured: dict[str, object] = {}
    real_load_config = cli.load_config

    def spy_load_config(**kwargs):
        captured.update(kwargs)
        return real_load_config(**kwargs)

    monkeypatch.setattr(cli, "load_config", spy_load_config)
    source = _source(tmp_path)

    code = cli.main(
        [str(source), "-to", "html", "--log-level", "debug", "--verbose"]
    )

    assert code == 0
    assert captured["overrides"] == cfg.ConfigOverrides(log_level="debug")
    assert captured["config_path"] is None


def test_config_init_writes_template(tmp_path, capsys):
    target = tmp_path / "conf" / "adoc_convert.toml"

    code = cli.main(["config", "init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert target.exists()
    assert "[pandoc]" in target.read_text(encoding="utf-8")
    assert str(target) in captured.out

    code = cli.main(["config", "init", "--path", str(target)])
    captured = capsys.readouterr()
    assert code == 1
    assert "already exists" in captured.err


def test_config_init_defaults_to_workspace(tmp_path, capsys):
    code = cli.main(["config", "init", "--workspace", str(tmp_path / "w")])

    assert code == 0
    expected = tmp_path / "w" / "config" / cfg.CONFIG_FILENAME
    assert expected.exists()
    capsys.readouterr()


def test_config_init_honours_config_env(tmp_path, monkeypatch, capsys):
    target = tmp_path / "elsewhere" / "settings.toml"
    monkeypatch.setenv(cfg.CONFIG_ENV, str(target))

    code = cli.main(["config", "init"])

    assert code == 0
    assert "[asciidoc]" in target.read_text(encoding="utf-8")
    assert str(target) in capsys.readouterr().out


def test_config_rejects_unknown_command(capsys):
    with pytest.raises(SystemExit):
        cli.main(["config", "show"])
    capsys.readouterr()
