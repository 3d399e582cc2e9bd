"""Tests for configuration loading, the engine factory and the CLI."""

import pytest
from sqlalchemy import text

from schema_upgrade.cli import main
from schema_upgrade.config import DEFAULT_DATABASE_URL, UpgradeConfig
from schema_upgrade.engine import create_upgrade_engine
from schema_upgrade.exceptions import ConfigurationError, UnsupportedDialectError


@pytest.fixture
def clean_env(monkeypatch):
    for name in [
        "SCHEMA_UPGRADE_DATABASE_URL",
        "SCHEMA_UPGRADE_RESOURCE_ROOT",
        "SCHEMA_UPGRADE_LOG_LEVEL",
        "SCHEMA_UPGRADE_LOG_FORMAT",
        "SCHEMA_UPGRADE_POOL_RECYCLE",
        "SQL_ECHO",
    ]:
        # setenv first so values loaded from .env files are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestUpgradeConfig:
    def test_defaults(self, clean_env, tmp_path):
        config = UpgradeConfig.from_environment(str(tmp_path / "missing.env"))

        assert config.database_url == DEFAULT_DATABASE_URL
        assert config.log_level == "INFO"
        assert config.pool_recycle == 3600
        assert config.echo_sql is False

    def test_from_environment(self, clean_env, tmp_path):
        clean_env.setenv("SCHEMA_UPGRADE_DATABASE_URL", "postgresql://ds:secret@db:5432/ds")
        clean_env.setenv("SCHEMA_UPGRADE_RESOURCE_ROOT", str(tmp_path))
        clean_env.setenv("SCHEMA_UPGRADE_LOG_LEVEL", "debug")
        clean_env.setenv("SQL_ECHO", "true")

        config = UpgradeConfig.from_environment(str(tmp_path / "missing.env"))

        assert config.resource_root == tmp_path
        assert config.log_level == "DEBUG"
        assert config.echo_sql is True
        assert config.masked_database_url() == "postgresql://ds:***@db:5432/ds"

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SCHEMA_UPGRADE_DATABASE_URL=mysql://ds@db/ds\n", encoding="utf-8")

        config = UpgradeConfig.from_environment(str(env_file))

        assert config.database_url == "mysql://ds@db/ds"

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("mysql+mysqlconnector://ds:p%40ss@db/ds", "mysql+mysqlconnector://ds:***@db/ds"),
            ("postgresql://ds@db/ds", "postgresql://ds@db/ds"),
            ("sqlite:///dolphinscheduler.db", "sqlite:///dolphinscheduler.db"),
        ],
    )
    def test_masked_database_url(self, url, expected):
        assert UpgradeConfig(url).masked_database_url() == expected

    def test_masked_database_url_rejects_garbage(self):
        with pytest.raises(ConfigurationError):
            UpgradeConfig("not a url").masked_database_url()

    def test_invalid_pool_recycle(self, clean_env, tmp_path):
        clean_env.setenv("SCHEMA_UPGRADE_POOL_RECYCLE", "soon")
        with pytest.raises(ConfigurationError):
            UpgradeConfig.from_environment(str(tmp_path / "missing.env"))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"database_url": ""},
            {"resource_root": "/definitely/not/here"},
            {"log_level": "chatty"},
        ],
    )
    def test_validate(self, kwargs):
        with pytest.raises(ConfigurationError):
            UpgradeConfig(**kwargs).validate()


class TestEngineFactory:
    def test_sqlite_engine(self, tmp_path):
        engine = create_upgrade_engine(UpgradeConfig(f"sqlite:///{tmp_path / 'a.db'}"))
        try:
            with engine.connect() as conn:
                assert conn.execute(text("SELECT 1")).scalar() == 1
        finally:
            engine.dispose()

    def test_unsupported_vendor(self):
        with pytest.raises(UnsupportedDialectError):
            create_upgrade_engine(UpgradeConfig("oracle://scott:tiger@db/orcl"))


class TestCli:
    @pytest.fixture
    def db_url(self, tmp_path):
        return f"sqlite:///{tmp_path / 'cli.db'}"

    def _run(self, db_url, resource_root, *args):
        return main(
            ["--database-url", db_url, "--resource-root", str(resource_root), *args]
        )

    def test_bootstrap_then_version(self, clean_env, db_url, resource_root, write_script, capsys):
        write_script(
            "sql/dolphinscheduler_sqlite.sql",
            "CREATE TABLE t_ds_version (id INTEGER PRIMARY KEY, version VARCHAR(200));\n"
            "INSERT INTO t_ds_version (version) VALUES ('3.1.0');\n",
        )

        assert self._run(db_url, resource_root) == 0
        assert "Schema initialized" in capsys.readouterr().out

        assert self._run(db_url, resource_root, "version") == 0
        assert capsys.readouterr().out.strip() == "3.1.0"

    def test_upgrade_single_step(self, clean_env, db_url, resource_root, write_script, capsys):
        write_script(
            "sql/dolphinscheduler_sqlite.sql",
            "CREATE TABLE t_ds_version (id INTEGER PRIMARY KEY, version VARCHAR(200));\n"
            "INSERT INTO t_ds_version (version) VALUES ('1.2.0');\n",
        )
        write_script("sql/upgrade/1.3.0_schema/sqlite/dolphinscheduler_ddl.sql", "SELECT 1;\n")
        write_script("sql/upgrade/1.3.0_schema/sqlite/dolphinscheduler_dml.sql", "SELECT 2;\n")

        assert self._run(db_url, resource_root, "init") == 0
        assert self._run(db_url, resource_root, "upgrade", "--step", "1.3.0_schema") == 0
        assert "1.3.0" in capsys.readouterr().out

    def test_fatal_error_exit_status(self, clean_env, db_url, resource_root):
        assert self._run(db_url, resource_root, "init") == 1

    def test_invalid_resource_root(self, clean_env, db_url, tmp_path):
        assert self._run(db_url, tmp_path / "nowhere", "init") == 1
