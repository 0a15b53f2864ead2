from unittest.mock import MagicMock, patch

from sqlalchemy import text

import rentflow.db as db_module


class TestCreateDbEngine:
    def test_sqlite_enforces_foreign_keys(self):
        engine = db_module.create_db_engine("sqlite:///:memory:")
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        engine.dispose()

    def test_sqlite_allows_cross_thread_use(self):
        with patch.object(db_module, "create_engine") as mock_create, patch.object(db_module, "event"):
            db_module.create_db_engine("sqlite:///./rentflow.db")
        assert mock_create.call_args.kwargs == {"connect_args": {"check_same_thread": False}}

    def test_server_database_pings_and_recycles(self):
        with patch.object(db_module, "create_engine") as mock_create, patch.object(db_module, "event") as mock_event:
            db_module.create_db_engine("postgresql://rentflow@db/rentflow")
        assert mock_create.call_args.kwargs == {"pool_pre_ping": True, "pool_recycle": 1800}
        mock_event.listen.assert_not_called()


class TestGetEngine:
    def test_creates_engine(self, monkeypatch):
        monkeypatch.setattr(db_module, "_engine", None)
        with patch.object(db_module, "settings") as mock_settings:
            mock_settings.db_url = "sqlite:///:memory:"
            engine = db_module.get_engine()
            assert engine is not None
            assert db_module._engine is engine

    def test_returns_cached_engine(self, monkeypatch):
        sentinel = MagicMock()
        monkeypatch.setattr(db_module, "_engine", sentinel)
        assert db_module.get_engine() is sentinel


class TestGetConnection:
    def test_singleton(self, monkeypatch):
        engine = MagicMock()
        monkeypatch.setattr(db_module, "_engine", engine)
        monkeypatch.setattr(db_module, "_connection", None)

        first = db_module.get_connection()
        second = db_module.get_connection()

        assert first is second
        engine.connect.assert_called_once()


class TestDisposeEngine:
    def test_closes_connection_and_pool(self, monkeypatch):
        engine = MagicMock()
        connection = MagicMock()
        monkeypatch.setattr(db_module, "_engine", engine)
        monkeypatch.setattr(db_module, "_connection", connection)

        db_module.dispose_engine()

        connection.close.assert_called_once()
        engine.dispose.assert_called_once()
        assert db_module._engine is None
        assert db_module._connection is None

    def test_noop_without_engine(self, monkeypatch):
        monkeypatch.setattr(db_module, "_engine", None)
        monkeypatch.setattr(db_module, "_connection", None)
        db_module.dispose_engine()
        assert db_module._engine is None


class TestAlembicConfig:
    def test_points_at_project_alembic_dir(self):
        cfg = db_module._get_alembic_config()
        assert cfg.get_main_option("script_location").endswith("alembic")

    def test_binds_settings_url_by_default(self):
        with patch.object(db_module, "settings") as mock_settings:
            mock_settings.db_url = "sqlite:///./billing.db"
            cfg = db_module._get_alembic_config()
        assert cfg.get_main_option("sqlalchemy.url") == "sqlite:///./billing.db"

    def test_binds_explicit_url_with_escaped_percent(self):
        cfg = db_module._get_alembic_config("postgresql://rentflow:p%40ss@db/rentflow")
        assert cfg.get_main_option("sqlalchemy.url") == "postgresql://rentflow:p%40ss@db/rentflow"


class TestInitializeDb:
    def test_upgrades_to_head(self):
        with patch.object(db_module, "command") as mock_command:
            db_module.initialize_db()
        args = mock_command.upgrade.call_args[0]
        assert args[1] == "head"

    def test_migrates_given_url(self):
        with patch.object(db_module, "command") as mock_command:
            db_module.initialize_db("sqlite:///./other.db")
        cfg = mock_command.upgrade.call_args[0][0]
        assert cfg.get_main_option("sqlalchemy.url") == "sqlite:///./other.db"
