"""
Tests for the peerql command line
"""

from unittest.mock import patch

from click.testing import CliRunner

from peerql.cli import cli


def test_print_schema():
    result = CliRunner().invoke(cli, ["print-schema"])
    assert result.exit_code == 0
    assert result.output.startswith("schema {\n  query: RootQueryType\n  mutation: Mutations\n}")
    assert "type User {" in result.output


def test_check_query_ok(tmp_path):
    path = tmp_path / "feed.graphql"
    path.write_text("query Feed { users { name posts { title } } }")
    result = CliRunner().invoke(cli, ["check-query", str(path)])
    assert result.exit_code == 0
    assert result.output == f"{path}: OK\n"


def test_check_query_reports_errors(tmp_path):
    path = tmp_path / "bad.graphql"
    path.write_text("query Bad {\n  users { email }\n}")
    result = CliRunner().invoke(cli, ["check-query", str(path)])
    assert result.exit_code == 1
    assert f"{path}:2:11: Cannot query field 'email' on type 'User'." in result.output


def test_check_query_depth_option(tmp_path):
    path = tmp_path / "deep.graphql"
    path.write_text("{ users { posts { title } } }")
    result = CliRunner().invoke(cli, ["check-query", str(path), "--max-depth", "1"])
    assert result.exit_code == 1
    assert "'anonymous' exceeds maximum operation depth of 1" in result.output


def test_check_query_syntax_error(tmp_path):
    path = tmp_path / "broken.graphql"
    path.write_text("{ users {")
    result = CliRunner().invoke(cli, ["check-query", str(path)])
    assert result.exit_code == 1
    assert "Syntax Error" in result.output


def test_serve_runs_app_factory():
    with patch("peerql.cli.uvicorn.run") as mock_run:
        result = CliRunner().invoke(cli, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    args, kwargs = mock_run.call_args
    assert args == ("peerql.api.app:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
