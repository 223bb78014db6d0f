import pytest
from click.testing import CliRunner
from unittest.mock import patch

from colshuffle.session import Credentials
from fixtures.fake_db import FakeResult
from shuffle_cli import cli

CREDS = Credentials(user='shuffler', password='s3cret', host='db', port=3306)


class TestShuffleCli:

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def mock_db(self, fake_engine):
        # The command does:
        # credentials = load_credentials(...)
        # server = create_shuffle_engine(credentials, ...)
        # engine = create_shuffle_engine(credentials, database=...)
        with patch('cli.shuffle.commands.load_credentials') as mock_load, \
             patch('cli.shuffle.commands.create_shuffle_engine') as mock_create_engine:
            mock_load.return_value = CREDS
            mock_create_engine.return_value = fake_engine
            yield mock_create_engine

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        assert "Shuffle column values" in result.output

    def test_no_arguments_prints_usage_before_connecting(self, runner, mock_db):
        result = runner.invoke(cli, [])
        assert result.exit_code == 1
        assert "Usage: table-shuffle <database>" in result.output
        mock_db.assert_not_called()

    def test_database_without_specs_prints_usage(self, runner, mock_db):
        result = runner.invoke(cli, ['mydb'])
        assert result.exit_code == 1
        assert "Usage:" in result.output
        mock_db.assert_not_called()

    def test_missing_credentials_is_fatal(self, runner, clean_env):
        result = runner.invoke(cli, ['mydb', 'users:id:name'])
        assert result.exit_code == 1
        assert "No database credentials found" in result.output

    def test_connection_failure_is_fatal(self, runner, mock_db, fake_conn):
        fake_conn.fail_on.append('SELECT 1')
        result = runner.invoke(cli, ['--yes', 'mydb', 'users:id:name'])
        assert result.exit_code == 1
        assert "MySQL connection failed" in result.output
        assert "s3cret" not in result.output
        assert not fake_conn.executed_matching('information_schema.TABLES')

    def test_missing_database_is_fatal(self, runner, mock_db, fake_conn):
        fake_conn.rules.insert(0, ('SCHEMATA', FakeResult([])))
        result = runner.invoke(cli, ['--yes', 'ghostdb', 'users:id:name'])
        assert result.exit_code == 1
        assert "doesn't exist or access denied" in result.output

    def test_shuffles_valid_table(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['--yes', 'mydb', 'users:id:name,email'])
        assert result.exit_code == 0
        assert "Validating structure for table 'users'" in result.output
        assert "Successfully shuffled 'users'" in result.output
        assert len(fake_conn.executed_matching('UPDATE `users`')) == 1

    def test_missing_table_still_exits_zero(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['--yes', 'mydb', 'ghost:id:col'])
        assert result.exit_code == 0
        assert "Table 'ghost' not found" in result.output
        assert "Skipping 'ghost'" in result.output
        assert not fake_conn.executed_matching('UPDATE ')

    def test_bogus_column_named(self, runner, mock_db):
        result = runner.invoke(cli, ['--yes', 'mydb', 'users:id:amount,bogus_col'])
        assert result.exit_code == 0
        assert "Column 'bogus_col' not found" in result.output
        assert "Column 'amount' not found" in result.output

    def test_one_valid_one_invalid(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['--yes', 'mydb', 'users:id:name', 'fakes:id:x'])
        assert result.exit_code == 0
        assert "Successfully shuffled 'users'" in result.output
        assert "Skipping 'fakes'" in result.output
        assert len(fake_conn.executed_matching('UPDATE ')) == 1

    def test_strict_exit_code_when_skipped(self, runner, mock_db):
        result = runner.invoke(cli, ['--yes', '--strict', 'mydb', 'users:id:name', 'fakes:id:x'])
        assert result.exit_code == 2

    def test_strict_exit_zero_when_all_shuffled(self, runner, mock_db):
        result = runner.invoke(cli, ['--yes', '--strict', 'mydb', 'users:id:name'])
        assert result.exit_code == 0

    def test_dry_run_needs_no_confirmation(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['--dry-run', 'mydb', 'users:id:name'])
        assert result.exit_code == 0
        assert "Dry run for 'users'" in result.output
        assert "CREATE TEMPORARY TABLE" in result.output
        assert not fake_conn.executed_matching('UPDATE ')

    def test_declined_confirmation_aborts(self, runner, mock_db, fake_conn):
        with patch('cli.shuffle.commands.is_interactive', return_value=True):
            result = runner.invoke(cli, ['mydb', 'users:id:name'], input='n\n')
        assert result.exit_code == 1
        assert "Aborted." in result.output
        assert not fake_conn.executed_matching('UPDATE ')

    def test_confirmation_accepted(self, runner, mock_db, fake_conn):
        with patch('cli.shuffle.commands.is_interactive', return_value=True):
            result = runner.invoke(cli, ['mydb', 'users:id:name'], input='y\n')
        assert result.exit_code == 0
        assert "Are you sure you want to continue?" in result.output
        assert len(fake_conn.executed_matching('UPDATE ')) == 1

    def test_end_of_input_at_prompt_aborts_cleanly(self, runner, mock_db, fake_conn):
        with patch('cli.shuffle.commands.is_interactive', return_value=True):
            result = runner.invoke(cli, ['mydb', 'users:id:name'], input='')
        assert result.exit_code == 1
        assert "Aborted." in result.output
        assert "Error" not in result.output
        assert not fake_conn.executed_matching('UPDATE ')

    def test_piped_run_needs_no_confirmation(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['mydb', 'users:id:name', 'fakes:id:x'], input='')
        assert result.exit_code == 0
        assert "Are you sure" not in result.output
        assert "Successfully shuffled 'users'" in result.output
        assert "Skipping 'fakes'" in result.output
        assert len(fake_conn.executed_matching('UPDATE ')) == 1

    def test_blank_error_message_names_the_exception(self, runner, mock_db):
        mock_db.side_effect = RuntimeError()
        result = runner.invoke(cli, ['--yes', 'mydb', 'users:id:name'])
        assert result.exit_code == 1
        assert "❌ Error: RuntimeError" in result.output

    def test_keep_checks_leaves_checks_on(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['--yes', '--keep-checks', 'mydb', 'users:id:name'])
        assert result.exit_code == 0
        sql, params = [e for e in fake_conn.executed if e[0].startswith('SET SESSION')][0]
        assert params['unique_checks'] == 1
        assert params['foreign_key_checks'] == 1

    def test_seed_is_passed_through(self, runner, mock_db, fake_conn):
        result = runner.invoke(cli, ['--yes', '--seed', '99', 'mydb', 'users:id:name'])
        assert result.exit_code == 0
        create = [e for e in fake_conn.executed if 'RAND(:seed)' in e[0]]
        assert create[0][1] == {'seed': 99}

    def test_tables_from_config(self, runner, mock_db, fake_conn, tmp_path):
        config = tmp_path / 'shuffle.yaml'
        config.write_text("database: mydb\ntables:\n  - users:id:name\n")
        result = runner.invoke(cli, ['--yes', '--config', str(config)])
        assert result.exit_code == 0
        assert "Successfully shuffled 'users'" in result.output

    def test_bad_config_is_fatal(self, runner, mock_db, tmp_path):
        config = tmp_path / 'shuffle.yaml'
        config.write_text("session:\n  sql_mode: ''\n")
        result = runner.invoke(cli, ['--config', str(config), 'mydb', 'users:id:name'])
        assert result.exit_code == 1
        assert "Unknown session setting" in result.output
        mock_db.assert_not_called()

    def test_log_file_receives_records(self, runner, mock_db, tmp_path):
        log_file = tmp_path / 'shuffle.log'
        result = runner.invoke(cli, ['--yes', '--log-file', str(log_file), 'mydb', 'users:id:name'])
        assert result.exit_code == 0
        content = log_file.read_text()
        assert "Requested 1 table(s) in database 'mydb'" in content
        assert 's3cret' not in content
