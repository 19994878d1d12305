from sqlalchemy import create_engine, inspect

from init_db import init_db


def test_creates_ledger_tables(tmp_path):
    url = f"sqlite:///{tmp_path / 'ledger.db'}"

    assert init_db(url) is True
    # running twice is harmless
    assert init_db(url) is True

    engine = create_engine(url)
    try:
        assert {"orders", "trackings"} <= set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_defaults_to_configured_database_url(tmp_path, monkeypatch):
    from ledger.config import settings

    url = f"sqlite:///{tmp_path / 'configured.db'}"
    monkeypatch.setattr(settings, "database_url", url)

    assert init_db() is True
    assert (tmp_path / "configured.db").exists()
