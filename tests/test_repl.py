import importlib.util
import sys
from pathlib import Path
import uuid
import pytest

def _load_repl_module():
    """Dynamically load the top-level lispy_repl.py as a module with a unique name."""
    repl_path = Path(__file__).resolve().parents[1] / "lispy_repl.py"
    mod_name = f"lispy_repl_for_test_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(mod_name, str(repl_path))
    mod = importlib.util.module_from_spec(spec)
    sys.modules[mod_name] = mod
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    return mod

@pytest.fixture
def repl(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["lispy"])
    return _load_repl_module()

def feed(monkeypatch, repl, lines):
    it = iter(lines)

    async def fake_ainput(prompt: str) -> str:
        assert prompt == "lispy> "
        return next(it)
    monkeypatch.setattr(repl, "ainput", fake_ainput)

@pytest.mark.asyncio
async def test_repl_exit_immediately(monkeypatch, capsys, repl):
    feed(monkeypatch, repl, ["exit"])
    await repl.main()
    out = capsys.readouterr().out
    assert "Lispy Version 0.0.1" in out
    assert "Press Ctrl+c to exit." in out

@pytest.mark.asyncio
async def test_repl_prints_values(monkeypatch, capsys, repl):
    feed(monkeypatch, repl, [
        "+ 1 2\n",
        "\n",
        "list 1 2 3\n",
        "/ 4 0\n",
        "exit\n",
    ])
    await repl.main()
    out, err = capsys.readouterr()
    lines = out.splitlines()
    assert "3" in lines
    assert "{1 2 3}" in lines
    # Lispy errors are values: printed to stdout like any result
    assert "Error: Division by zero" in lines
    assert err == ""

@pytest.mark.asyncio
async def test_repl_parse_errors_print_to_stderr(monkeypatch, capsys, repl):
    feed(monkeypatch, repl, ["(+ 1 2", "exit"])
    await repl.main()
    out, err = capsys.readouterr()
    assert "Lispy Version 0.0.1" in out
    assert err.strip() != ""

@pytest.mark.asyncio
async def test_repl_eof_quits(monkeypatch, capsys, repl):
    async def fake_ainput(prompt: str) -> str:
        return ""
    monkeypatch.setattr(repl, "ainput", fake_ainput)
    await repl.main()
    out = capsys.readouterr().out
    assert "Exiting." in out

def test_run_script_file(tmp_path, capsys, repl):
    script = tmp_path / "prog.lspy"
    script.write_text("eval (head {(+ 1 2) (+ 10 20)})\n", encoding="utf-8")
    repl.run_script_file(str(script))
    assert capsys.readouterr().out.strip() == "3"

def test_run_script_file_error_value_exits_nonzero(tmp_path, capsys, repl):
    script = tmp_path / "bad.lspy"
    script.write_text("head {}", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        repl.run_script_file(str(script))
    assert exc.value.code == 1
    assert "Error: Function 'head' passed {}" in capsys.readouterr().out

def test_run_script_file_missing(tmp_path, capsys, repl):
    with pytest.raises(SystemExit) as exc:
        repl.run_script_file(str(tmp_path / "missing.lspy"))
    assert exc.value.code == 1
    assert "file not found" in capsys.readouterr().err

@pytest.mark.asyncio
async def test_main_runs_file_argument(monkeypatch, tmp_path, capsys, repl):
    script = tmp_path / "prog.lspy"
    script.write_text("len {1 2 3}", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["lispy", str(script)])
    await repl.main()
    out = capsys.readouterr().out
    assert out.strip() == "3"
    assert "Lispy Version" not in out
