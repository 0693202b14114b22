import sys

import pytest

import privacy_pass.core.config as config_module  # type: ignore[import]
from privacy_pass import cli  # type: ignore[import]
from privacy_pass.tokens.storage import JsonFileTokenStorage  # type: ignore[import]

from tests.helpers.fakes import make_tokens


def _seed(path, count):
    JsonFileTokenStorage(path).save("bypass-tokens-1", "bypass-tokens-count-1", make_tokens(count))


def test_count_and_clear(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)
    path = tmp_path / "pool.json"
    _seed(path, 3)

    assert cli.run_cli(["--config-id", "1", "--token-file", str(path), "count"]) == 0
    assert capsys.readouterr().out.strip() == "3"

    assert cli.run_cli(["--config-id", "1", "--token-file", str(path), "clear"]) == 0
    assert not path.exists()


def test_configs_marks_active(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)

    cli.run_cli(["--config-id", "2", "--token-file", str(tmp_path / "p.json"), "configs"])

    lines = capsys.readouterr().out.splitlines()
    assert lines == ["[ ] 0 example", "[ ] 1 cloudflare", "[*] 2 hcaptcha"]


def test_show_unknown_bundle(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)

    code = cli.run_cli(["--config-id", "1", "--token-file", str(tmp_path / "p.json"), "show", "9"])

    assert code == 2
    assert "Unknown configuration id: 9" in capsys.readouterr().out


def test_show_prints_bundle_fields(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)

    cli.run_cli(["--config-id", "1", "--token-file", str(tmp_path / "p.json"), "show", "1"])

    out = capsys.readouterr().out
    assert "redeem_method: reload" in out
    assert "captcha_domain: captcha.website" in out


def test_main_exits_with_command_status(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)
    monkeypatch.setattr(
        sys, "argv", ["privacy-pass", "--config-id", "1", "--token-file", str(tmp_path / "p.json"), "show", "7"]
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 2
    assert "[!]" in capsys.readouterr().out
