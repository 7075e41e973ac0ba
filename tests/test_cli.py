import io
import sys
from unittest.mock import patch

import pytest

from conftest import FakeEmbedder
from vecgrep import __main__ as cli, embed


@pytest.fixture
def stdio(monkeypatch):
    out, err = io.StringIO(), io.StringIO()

    def feed(text: str):
        monkeypatch.setattr(sys, "stdin", io.StringIO(text))
        monkeypatch.setattr(sys, "stdout", out)
        monkeypatch.setattr(sys, "stderr", err)
        return out, err

    return feed


def test_cli_prints_matches(stdio):
    out, err = stdio("server crashed with error 123\nuser logged in\n")
    with patch.object(embed, "load", return_value=FakeEmbedder()):
        code = cli.main(["server shutdown error"])
    assert code == 0
    assert out.getvalue() == "server crashed with error 123\t[0.832]\n"
    assert "matches: 1 (threshold 0.60)" in err.getvalue()


def test_cli_context_flag_sets_both_sides(stdio, log_lines):
    stdio("\n".join(log_lines) + "\n")
    args = cli.build_parser().parse_args(["q", "-C", "2", "-A", "1"])
    config = cli.config_from_args(args)
    assert (config.before, config.after) == (2, 1)


def test_cli_model_from_env(stdio, monkeypatch):
    stdio("hello\n")
    monkeypatch.setenv("VECGREP_MODEL", "env/model")
    with patch.object(embed, "load", return_value=FakeEmbedder()) as load:
        assert cli.main(["greeting"]) == 0
    assert load.call_args.args[0] == "env/model"


def test_cli_model_flag_beats_env(stdio, monkeypatch):
    stdio("hello\n")
    monkeypatch.setenv("VECGREP_MODEL", "env/model")
    with patch.object(embed, "load", return_value=FakeEmbedder()) as load:
        assert cli.main(["greeting", "-m", "flag/model"]) == 0
    assert load.call_args.args[0] == "flag/model"


def test_cli_stream_with_top_is_config_error(stdio):
    out, err = stdio("server error\n")
    with patch.object(embed, "load") as load, pytest.raises(SystemExit) as exc:
        cli.main(["q", "--stream", "--top", "3"])
    assert exc.value.code == 2
    assert "Invalid configuration:" in err.getvalue()
    assert out.getvalue() == ""
    load.assert_not_called()


def test_cli_missing_query_is_usage_error(stdio):
    stdio("")
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2


def test_cli_embedding_failure_exits_1(stdio):
    out, err = stdio("server error\n")
    with patch.object(embed, "load", side_effect=embed.EmbeddingError("failed to load model 'x'")):
        assert cli.main(["q"]) == 1
    assert err.getvalue().strip() == "vecgrep: error: failed to load model 'x'"


def test_cli_stream_mode(stdio):
    out, err = stdio("user logged in\nserver error\nweather\n")
    with patch.object(embed, "load", return_value=FakeEmbedder()):
        assert cli.main(["server shutdown", "--stream", "-B", "1", "--hide-scores"]) == 0
    assert out.getvalue() == "user logged in\nserver error\n"
    assert err.getvalue() == ""


class _PipeClosedAfter(io.StringIO):
    def __init__(self, fd: int, writes: int):
        super().__init__()
        self._fd = fd
        self._writes = writes

    def write(self, s):
        if self._writes <= 0:
            raise BrokenPipeError(32, "Broken pipe")
        self._writes -= 1
        return super().write(s)

    def fileno(self) -> int:
        return self._fd


def test_cli_broken_pipe_keeps_written_lines(monkeypatch, tmp_path, log_lines):
    err = io.StringIO()
    with open(tmp_path / "stdout", "w") as sink:
        out = _PipeClosedAfter(sink.fileno(), writes=1)
        monkeypatch.setattr(sys, "stdin", io.StringIO("\n".join(log_lines) + "\n"))
        monkeypatch.setattr(sys, "stdout", out)
        monkeypatch.setattr(sys, "stderr", err)
        with patch.object(embed, "load", return_value=FakeEmbedder()):
            code = cli.main(["server shutdown error", "--hide-scores"])
    assert code == 1
    assert out.getvalue() == "server crashed with error 123\n"
    assert "Traceback" not in err.getvalue()


def test_cli_invalid_utf8_exits_1_after_partial_output(stdio, monkeypatch):
    out, err = stdio("")
    data = b"server error\n" + b"weather today\n" * 2000 + b"\xff\xfe bad\n"
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data), encoding="latin-1"))
    with patch.object(embed, "load", return_value=FakeEmbedder()):
        code = cli.main(["server", "--stream"])
    assert code == 1
    assert out.getvalue() == "server error\t[1.000]\n"
    assert err.getvalue().startswith("vecgrep: error: i/o failure:")


class _InterruptingEmbedder(FakeEmbedder):
    def embed_batch(self, texts):
        if self.calls:
            raise KeyboardInterrupt
        return super().embed_batch(texts)


def test_cli_keyboard_interrupt_exits_130(stdio):
    out, err = stdio("server error\nuser logged in\n")
    with patch.object(embed, "load", return_value=_InterruptingEmbedder()):
        assert cli.main(["server"]) == 130
    assert out.getvalue() == ""


class _WrongDimensionEmbedder(FakeEmbedder):
    def embed_batch(self, texts):
        vecs = super().embed_batch(texts)
        return vecs if len(self.calls) == 1 else [v + [1.0] for v in vecs]


def test_cli_wrong_dimension_exits_1(stdio):
    out, err = stdio("server error\n")
    with patch.object(embed, "load", return_value=_WrongDimensionEmbedder()):
        assert cli.main(["server"]) == 1
    assert "vecgrep: error: malformed embeddings: dimension mismatch" in err.getvalue()
