import json

import pytest

from ledgersight.cli import main


def write_config(tmp_path):
    path = tmp_path / "ledgersight_config.toml"
    path.write_text(
        """
[fiscal_year]
start_date = "2025-01-01"
end_date = "2025-12-31"

[database]
path = "ledger.sqlite"

[accounting]
country = "FR"

[logging]
level = "WARNING"
""",
        encoding="utf-8",
    )
    return str(path)


def write_csv(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def import_sample_data(tmp_path, config):
    files = {
        "clients": "id,name\n1,ACME\n",
        "invoices": (
            "id,number,client_id,date,ht,ttc,vat_rate,status\n"
            "10,INV-001,1,2025-01-10,1000.00,1200.00,20,paid\n"
            "11,INV-002,1,2025-02-10,500.00,600.00,20,sent\n"
        ),
        "bank_transactions": (
            "id,date,amount,reference\n1,2025-02-20,600.00,Payment INV-002\n"
        ),
    }
    for table, content in files.items():
        csv_path = write_csv(tmp_path, f"{table}.csv", content)
        code = main(
            ["--config", config, "import", "--table", table, "--user", "u1", csv_path]
        )
        assert code == 0


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert "ledgersight" in capsys.readouterr().out


def test_import_and_statements(tmp_path, capsys):
    config = write_config(tmp_path)
    import_sample_data(tmp_path, config)
    capsys.readouterr()

    code = main(["--config", config, "statements", "--user", "u1", "--period", "fy"])

    out = capsys.readouterr().out
    assert code == 0
    assert "=== Balance sheet ===" in out
    assert "=== Income statement ===" in out
    assert "=== Tax estimate ===" in out
    assert "Total tax 150.00" in out


def test_declaration_json_output(tmp_path, capsys):
    config = write_config(tmp_path)
    import_sample_data(tmp_path, config)
    capsys.readouterr()

    code = main(
        ["--config", config, "declaration", "--user", "u1", "--format", "json"]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["format"] == "CA3"
    assert payload["lines"]["line08_tva_collectee"] == pytest.approx(200.00)


def test_declaration_unsupported_country(tmp_path, capsys):
    config = write_config(tmp_path)

    code = main(["--config", config, "declaration", "--user", "u1", "--country", "DE"])

    assert code == 1
    assert "not supported" in capsys.readouterr().err


def test_invalid_custom_period(tmp_path, capsys):
    config = write_config(tmp_path)

    code = main(
        [
            "--config",
            config,
            "statements",
            "--user",
            "u1",
            "--from-date",
            "2025-06-01",
            "--to-date",
            "2025-01-01",
        ]
    )

    assert code == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_reconcile_and_bank_summary(tmp_path, capsys):
    config = write_config(tmp_path)
    import_sample_data(tmp_path, config)
    capsys.readouterr()

    code = main(["--config", config, "reconcile", "--user", "u1"])
    out = capsys.readouterr().out
    assert code == 0
    assert "INV-002" in out
    assert "Matched: 1, failed commits: 0" in out

    code = main(["--config", config, "bank-summary", "--user", "u1"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Match rate (%)" in out


def test_missing_config_file(tmp_path, capsys):
    code = main(
        ["--config", str(tmp_path / "nope.toml"), "bank-summary", "--user", "u1"]
    )

    assert code == 1
    assert "Config file not found" in capsys.readouterr().err


def test_missing_csv_file(tmp_path, capsys):
    config = write_config(tmp_path)

    code = main(
        [
            "--config",
            config,
            "import",
            "--table",
            "expenses",
            "--user",
            "u1",
            str(tmp_path / "missing.csv"),
        ]
    )

    assert code == 1
    assert "CSV file not found" in capsys.readouterr().err


def test_reconcile_suggest_lists_candidates_without_matching(tmp_path, capsys):
    config = write_config(tmp_path)
    import_sample_data(tmp_path, config)
    capsys.readouterr()

    code = main(["--config", config, "reconcile", "--user", "u1", "--suggest", "1"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Candidates for transaction 1" in out
    assert "INV-002" in out

    # The suggested invoice is still open for the matcher
    code = main(["--config", config, "reconcile", "--user", "u1"])
    assert code == 0
    assert "Matched: 1, failed commits: 0" in capsys.readouterr().out


def test_reconcile_suggest_unknown_transaction(tmp_path, capsys):
    config = write_config(tmp_path)
    import_sample_data(tmp_path, config)
    capsys.readouterr()

    code = main(["--config", config, "reconcile", "--user", "u1", "--suggest", "42"])

    assert code == 1
    assert "Unknown bank transaction" in capsys.readouterr().err


def test_statements_with_missing_database(tmp_path, capsys):
    config = write_config(tmp_path)

    code = main(["--config", config, "statements", "--user", "u1"])

    assert code == 1
    assert "Failed to fetch ledger data" in capsys.readouterr().err
    assert not (tmp_path / "ledger.sqlite").exists()
