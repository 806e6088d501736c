from datetime import date

import pytest

from ledgersight.config import load_app_config
from ledgersight.errors import ConfigError
from ledgersight.tax import DEFAULT_TAX_BRACKETS

BASE_CONFIG = """
[fiscal_year]
start_date = "2025-01-01"
end_date = "2025-12-31"
"""


def write_config(tmp_path, body: str):
    path = tmp_path / "ledgersight_config.toml"
    path.write_text(BASE_CONFIG + body, encoding="utf-8")
    return path


def test_minimal_config_uses_defaults(tmp_path) -> None:
    cfg = load_app_config(str(write_config(tmp_path, "")))

    assert cfg.fiscal_year.start_date == date(2025, 1, 1)
    assert cfg.fiscal_year.end_date == date(2025, 12, 31)
    assert cfg.country == "FR"
    assert cfg.currency == "EUR"
    assert cfg.result_account_prefix == "12"
    assert cfg.default_vat_rate == 20.0
    assert cfg.reconciliation.threshold == 0.8
    assert cfg.reconciliation.strategy == "greedy"
    assert cfg.reconciliation.fetch_limit == 100
    assert cfg.tax_brackets == DEFAULT_TAX_BRACKETS
    assert cfg.logging.level == "INFO"
    assert cfg.logging.json is False


def test_database_path_is_resolved_against_config_dir(tmp_path) -> None:
    body = """
[database]
engine = "sqlite"
path = "db/ledger.sqlite"
"""
    cfg = load_app_config(str(write_config(tmp_path, body)))

    assert cfg.database.engine == "sqlite"
    assert cfg.database.path == (tmp_path / "db" / "ledger.sqlite").resolve()


def test_full_config_is_parsed(tmp_path) -> None:
    body = """
[accounting]
country = "be"
currency = "EUR"
result_account_prefix = "14"

[vat]
default_rate = 21

[reconciliation]
threshold = 0.5
strategy = "optimal"
fetch_limit = 20

[[tax.brackets]]
min = 0
max = 10000
rate = 0.1

[[tax.brackets]]
min = 10000
rate = 0.3

[logging]
level = "debug"
json = true
"""
    cfg = load_app_config(str(write_config(tmp_path, body)))

    assert cfg.country == "BE"
    assert cfg.result_account_prefix == "14"
    assert cfg.default_vat_rate == 21.0
    assert cfg.reconciliation.threshold == 0.5
    assert cfg.reconciliation.strategy == "optimal"
    assert cfg.reconciliation.fetch_limit == 20
    assert len(cfg.tax_brackets) == 2
    assert cfg.tax_brackets[1].max is None
    assert cfg.tax_brackets[1].rate == 0.3
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.json is True


def test_missing_config_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))


def test_invalid_toml_raises_config_error(tmp_path) -> None:
    path = tmp_path / "bad.toml"
    path.write_text("[fiscal_year\nstart_date = ", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_app_config(str(path))


def test_fiscal_year_end_before_start_raises(tmp_path) -> None:
    path = tmp_path / "cfg.toml"
    path.write_text(
        '[fiscal_year]\nstart_date = "2025-12-31"\nend_date = "2025-01-01"\n',
        encoding="utf-8",
    )

    with pytest.raises(ConfigError):
        load_app_config(str(path))


@pytest.mark.parametrize(
    "body",
    [
        "[reconciliation]\nthreshold = 1.5\n",
        '[reconciliation]\nstrategy = "random"\n',
        "[reconciliation]\nfetch_limit = 0\n",
        '[vat]\ndefault_rate = "twenty"\n',
        '[logging]\nlevel = "LOUD"\n',
        # Gap between brackets
        "[[tax.brackets]]\nmin = 0\nmax = 100\nrate = 0.1\n"
        "[[tax.brackets]]\nmin = 200\nrate = 0.2\n",
        # Bounded last bracket
        "[[tax.brackets]]\nmin = 0\nmax = 100\nrate = 0.1\n",
    ],
)
def test_invalid_values_raise_config_error(tmp_path, body) -> None:
    with pytest.raises(ConfigError):
        load_app_config(str(write_config(tmp_path, body)))
