"""Unit tests for the Codex CLI generator.

A small Python script stands in for the ``codex`` executable.
"""

import json
import sys
import textwrap
import threading

import pytest

from codex_spec.generator import (
    CancellationToken,
    CodexCLIGenerator,
    GenerationOptions,
    GeneratorCancelled,
    GeneratorError,
)


def _fake_codex(tmp_path, body):
    script = tmp_path / "fake_codex.py"
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return CodexCLIGenerator(command=[sys.executable, str(script)], cwd=tmp_path)


class TestArguments:

    def test_exec_form_with_sandbox_and_model(self):
        generator = CodexCLIGenerator()
        options = GenerationOptions(sandbox="read-only", model="o4-mini")

        assert generator.build_args("do it", options) == [
            "codex", "--model", "o4-mini", "exec", "do it", "-s", "read-only",
        ]

    def test_sandbox_none_passes_no_flag(self):
        args = CodexCLIGenerator().build_args("p", GenerationOptions(sandbox="none"))

        assert args == ["codex", "exec", "p"]

    def test_invalid_sandbox(self):
        with pytest.raises(ValueError, match="Invalid sandbox"):
            GenerationOptions(sandbox="everything")


class TestExecution:

    def test_returns_stdout_and_streams_progress(self, tmp_path):
        generator = _fake_codex(tmp_path, """
            import json, sys
            print(json.dumps(sys.argv[1:]))
            print("*** Add File: src/a.js")
        """)
        chunks = []

        output = generator.generate("build", GenerationOptions(sandbox="workspace-write", on_progress=chunks.append))

        assert json.loads(output.splitlines()[0]) == ["exec", "build", "-s", "workspace-write"]
        assert "*** Add File: src/a.js" in output
        assert "".join(chunks) == output

    def test_non_zero_exit_raises_with_stderr(self, tmp_path):
        generator = _fake_codex(tmp_path, """
            import sys
            sys.stderr.write("quota exceeded")
            sys.exit(3)
        """)

        with pytest.raises(GeneratorError) as excinfo:
            generator.generate("x", GenerationOptions())

        assert excinfo.value.exit_code == 3
        assert excinfo.value.stderr == "quota exceeded"
        assert str(excinfo.value) == "Codex CLI failed (exit code 3): quota exceeded"

    def test_missing_executable(self, tmp_path):
        generator = CodexCLIGenerator(command=[str(tmp_path / "no-such-codex")])

        with pytest.raises(GeneratorError, match="Could not start"):
            generator.generate("x", GenerationOptions())

    def test_cancellation_terminates_process(self, tmp_path):
        generator = _fake_codex(tmp_path, """
            import time
            time.sleep(30)
        """)
        token = CancellationToken()
        timer = threading.Timer(0.3, token.cancel)
        timer.start()
        try:
            with pytest.raises(GeneratorCancelled, match="cancelled"):
                generator.generate("x", GenerationOptions(), cancel_token=token)
        finally:
            timer.cancel()

    def test_timeout(self, tmp_path):
        generator = _fake_codex(tmp_path, """
            import time
            time.sleep(30)
        """)
        generator.timeout = 0.3

        with pytest.raises(GeneratorCancelled, match="timed out"):
            generator.generate("x", GenerationOptions())


def test_cancellation_token():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled
    assert token.wait(0)
