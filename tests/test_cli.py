import json

from main import main, read_file_or_string

REFERENCE = "SELECT name FROM employees WHERE salary > 50000"


def test_correct_answer_exits_zero(capsys):
    code = main(["--student", "SELECT name FROM employees WHERE salary >= 60000", "--reference", REFERENCE])
    assert code == 0
    assert "Correct: True" in capsys.readouterr().out


def test_wrong_answer_exits_one_with_hints(capsys):
    code = main(["--student", "SELECT name FROM employees", "--reference", REFERENCE])
    out = capsys.readouterr().out
    assert code == 1
    assert "Correct: False" in out
    assert "Hints (tiered):" in out


def test_json_output(capsys):
    code = main([
        "--student", "SELECT name FROM employees",
        "--reference", REFERENCE,
        "--scoring", "partial-credit",
        "--tags", "WHERE",
        "--json",
    ])
    body = json.loads(capsys.readouterr().out)
    assert code == 1
    assert body["isCorrect"] is False
    assert body["score"] == 50
    assert body["rowsReturned"] == 4


def test_files_and_setup_script(tmp_path, capsys):
    setup = tmp_path / "setup.sql"
    setup.write_text("CREATE TABLE t (x INTEGER); INSERT INTO t VALUES (1), (2), (3);")
    student = tmp_path / "student.sql"
    student.write_text("SELECT x FROM t WHERE x > 1;\n")
    code = main([
        "--student-file", str(student),
        "--reference", "SELECT x FROM t WHERE x >= 2",
        "--setup", str(setup),
        "--json",
    ])
    assert code == 0
    assert json.loads(capsys.readouterr().out)["rowsReturned"] == 2


def test_schema_json(tmp_path, capsys):
    schema = tmp_path / "schema.json"
    schema.write_text(json.dumps({
        "name": "pets",
        "tables": [{
            "name": "pets",
            "columns": [{"name": "name", "type": "VARCHAR"}, {"name": "kind", "type": "VARCHAR"}],
            "rows": [["Rex", "dog"], ["Tom", "cat"]],
        }],
    }))
    code = main([
        "--student", "SELECT NAME FROM pets WHERE kind = 'DOG'",
        "--reference", "SELECT name FROM pets WHERE kind = 'dog'",
        "--schema", str(schema),
    ])
    # 'DOG' matches nothing, so the result is empty
    assert code == 1
    capsys.readouterr()


def test_error_verdict_is_printed(capsys):
    code = main(["--student", "SELECT name FROM employes", "--reference", REFERENCE])
    out = capsys.readouterr().out
    assert code == 1
    assert "Error (runtime_error)" in out


def test_missing_schema_file_exits_two(tmp_path, capsys):
    code = main(["--student", REFERENCE, "--reference", REFERENCE, "--schema", str(tmp_path / "missing.json")])
    assert code == 2
    assert "Failed to load schema" in capsys.readouterr().err


def test_blank_student_file_exits_two(tmp_path, capsys):
    blank = tmp_path / "blank.sql"
    blank.write_text("   \n")
    code = main(["--student-file", str(blank), "--reference", REFERENCE])
    assert code == 2
    assert "Could not read SQL" in capsys.readouterr().err


def test_read_file_or_string(tmp_path):
    path = tmp_path / "q.sql"
    path.write_text("SELECT 1")
    assert read_file_or_string(str(path)) == "SELECT 1"
    assert read_file_or_string("SELECT 2") == "SELECT 2"
    assert read_file_or_string(None) is None
