import json
from pathlib import Path

import pytest

from ump_lookup import cli
from ump_lookup import config as config_module
from ump_lookup.pushdrop import build_pushdrop_script

PUBKEY = bytes.fromhex("02" + "44" * 32)
PRESENTATION = "ab" * 32
RECOVERY = "cd" * 32


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
    monkeypatch.setattr(config_module, "_CONFIG_PATH_OVERRIDE", None)
    for name in ("UMP_LOOKUP_DB_PATH", "UMP_LOOKUP_TOPIC", "UMP_LOOKUP_STRICT_QUERIES"):
        monkeypatch.delenv(name, raising=False)
    yield


def _script_hex() -> str:
    fields = [b"\x05" * 8] * 6 + [bytes.fromhex(PRESENTATION), bytes.fromhex(RECOVERY)]
    return build_pushdrop_script(PUBKEY, fields).hex()


def test_admit_lookup_spend_round(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cli.sqlite")

    cli.main(["--db-path", db, "admit", "tx1", "0", _script_hex()])
    cli.main(["--db-path", db, "lookup", "--presentation-hash", PRESENTATION, "--json"])
    found = json.loads(capsys.readouterr().out)

    cli.main(["--db-path", db, "spend", "tx1", "0"])
    cli.main(["--db-path", db, "lookup", "--recovery-hash", RECOVERY])
    after_spend = capsys.readouterr().out

    assert found == [{"txid": "tx1", "outputIndex": 0}]
    assert "No matching UMP token found." in after_spend


def test_lookup_by_outpoint_prints_reference(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cli.sqlite")
    cli.main(["--db-path", db, "admit", "tx9", "3", _script_hex()])

    cli.main(["--db-path", db, "lookup", "--outpoint", "tx9.3"])

    assert capsys.readouterr().out.strip() == "tx9.3"


def test_evict_and_info(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cli.sqlite")
    cli.main(["--db-path", db, "admit", "tx1", "0", _script_hex()])
    cli.main(["--db-path", db, "admit", "tx2", "0", _script_hex()])
    cli.main(["--db-path", db, "evict", "tx1", "0"])

    cli.main(["--db-path", db, "info"])
    out = capsys.readouterr().out

    assert "UMP Lookup Service" in out
    assert "indexed tokens: 1" in out


def test_admit_on_untracked_topic_indexes_nothing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cli.sqlite")
    cli.main(["--db-path", db, "admit", "tx1", "0", _script_hex(), "--topic", "tm_other"])

    cli.main(["--db-path", db, "info"])

    assert "indexed tokens: 0" in capsys.readouterr().out


def test_malformed_script_exits_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cli.sqlite")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--db-path", db, "admit", "tx1", "0", "zz"])

    assert excinfo.value.code == 1
    assert "error:" in capsys.readouterr().err


def test_malformed_outpoint_reports_no_match(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cli.sqlite")

    cli.main(["--db-path", db, "lookup", "--outpoint", "tx1"])

    captured = capsys.readouterr()
    assert "No matching UMP token found." in captured.out
    assert captured.err == ""


def test_docs_command_needs_no_database(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["docs"])

    assert "# UMP Lookup Service" in capsys.readouterr().out
