import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts import generate_statements
from stores import InMemoryStatementStore, TransportError


def test_cli_prints_distribution_and_statistics(capsys):
    exit_code = generate_statements.main(
        ["--learners", "10", "--weeks", "2", "--seed", "3", "--start-date", "2025-03-03"]
    )
    captured = capsys.readouterr()
    assert exit_code == 0
    lines = captured.out.splitlines()
    assert lines[0] == "Persona distribution:"
    assert "  struggler: 3 (30.0%)" in lines
    assert "Session statistics:" in lines
    assert any(line.startswith("Statements generated: ") for line in lines)


def test_cli_writes_output_file(tmp_path, capsys):
    output = tmp_path / "statements.json"
    exit_code = generate_statements.main(
        ["--learners", "5", "--weeks", "1", "--seed", "1", "--output", str(output)]
    )
    assert exit_code == 0
    statements = json.loads(output.read_text(encoding="utf-8"))
    assert statements
    assert all(statement["version"] == "1.0.0" for statement in statements)
    assert f"Statements written to {output}" in capsys.readouterr().out


def test_cli_reports_missing_course(tmp_path, capsys):
    exit_code = generate_statements.main(["--course", str(tmp_path / "missing.json")])
    captured = capsys.readouterr()
    assert exit_code == 2
    assert "File not found" in captured.err


def test_cli_reports_malformed_course(tmp_path, capsys):
    course = tmp_path / "course.json"
    course.write_text("{not json", encoding="utf-8")
    exit_code = generate_statements.main(["--course", str(course), "--learners", "5"])
    assert exit_code == 2
    assert "Invalid JSON" in capsys.readouterr().err


def test_cli_reports_malformed_verbs(tmp_path, capsys):
    verbs = tmp_path / "verbs.json"
    verbs.write_text(json.dumps([{"id": "http://adlnet.gov/expapi/verbs/rated"}]), encoding="utf-8")
    exit_code = generate_statements.main(["--verbs", str(verbs), "--learners", "5"])
    assert exit_code == 2
    assert "Invalid verb document" in capsys.readouterr().err


def test_cli_submits_to_statement_api(monkeypatch, capsys):
    sink = InMemoryStatementStore()
    monkeypatch.setattr(generate_statements, "HttpStatementStore", lambda url: sink)
    exit_code = generate_statements.main(
        ["--learners", "5", "--weeks", "1", "--seed", "2", "--submit-url", "http://lrs.test/api"]
    )
    assert exit_code == 0
    assert sink.batches == 1
    assert "Statements submitted to http://lrs.test/api" in capsys.readouterr().out


def test_cli_returns_error_when_submission_fails(monkeypatch, capsys):
    class FailingSink:
        def save_bulk_statements(self, statements):
            raise TransportError("refused")

    monkeypatch.setattr(generate_statements, "HttpStatementStore", lambda url: FailingSink())
    exit_code = generate_statements.main(
        ["--learners", "5", "--weeks", "1", "--seed", "2", "--submit-url", "http://lrs.test/api"]
    )
    assert exit_code == 1
    assert "Submission failed: refused" in capsys.readouterr().err
