import sys

import pytest

from datafetch.shared.retry import RetryStrategy
from datafetch.shared.shell import run_cmd
from datafetch.shared.files import dir_size, filename_from_url, format_bytes, is_within


class TestRetryStrategy:

    def test_retries_listed_exceptions_then_succeeds(self):
        sleeps = []
        retried = []
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("reset")
            return "ok"

        strategy = RetryStrategy(
            max_attempts=5, backoff_seconds=1.0, jitter=False,
            exceptions=(ConnectionError,), sleep=sleeps.append,
            on_retry=lambda attempt, e, wait: retried.append(attempt),
        )

        assert strategy.execute(flaky) == "ok"
        assert sleeps == [1.0, 2.0]
        assert retried == [1, 2]

    def test_gives_up_after_max_attempts(self):
        calls = []
        strategy = RetryStrategy(max_attempts=2, jitter=False, sleep=lambda s: None)

        def always_bad():
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            strategy.execute(always_bad)
        assert len(calls) == 2

    def test_other_exceptions_propagate_immediately(self):
        sleeps = []
        strategy = RetryStrategy(max_attempts=5, exceptions=(ConnectionError,), sleep=sleeps.append)

        def broken():
            raise KeyError("x")

        with pytest.raises(KeyError):
            strategy.execute(broken)
        assert sleeps == []

    def test_backoff_is_capped(self):
        strategy = RetryStrategy(backoff_seconds=10, max_backoff=15, jitter=False)

        assert strategy._calculate_backoff(4) == 15


class TestRunCmd:

    def test_success(self):
        rc, out, err = run_cmd([sys.executable, "-c", "print('hello')"])
        assert rc == 0
        assert "hello" in out

    def test_nonzero(self):
        rc, _, _ = run_cmd([sys.executable, "-c", "raise SystemExit(3)"])
        assert rc == 3

    def test_env_is_merged(self):
        rc, out, _ = run_cmd(
            [sys.executable, "-c", "import os; print(os.environ['GIT_TERMINAL_PROMPT'])"],
            env={"GIT_TERMINAL_PROMPT": "0"},
        )
        assert out.strip() == "0"

    def test_stderr_is_captured(self):
        rc, out, err = run_cmd([sys.executable, "-c", "import sys; sys.stderr.write('auth failed')"])
        assert rc == 0
        assert out == ""
        assert err == "auth failed"

    def test_missing_executable(self):
        rc, _, err = run_cmd(["definitely-not-a-real-binary-xyz"])
        assert rc == 127
        assert "not found" in err


def test_dir_size(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "one.bin").write_bytes(b"x" * 3)
    (tmp_path / "two.bin").write_bytes(b"x" * 4)

    assert dir_size(tmp_path) == 7
    assert dir_size(tmp_path / "two.bin") == 4
    assert dir_size(tmp_path / "missing") == 0


def test_filename_from_url():
    assert filename_from_url("https://example.com/path/BlendedMVS%2B.zip?dl=1") == "BlendedMVS+.zip"
    assert filename_from_url("https://example.com/", default="fallback") == "fallback"


def test_format_bytes():
    assert format_bytes(512) == "512.0B"
    assert format_bytes(1536) == "1.5KB"


def test_is_within(tmp_path):
    assert is_within(tmp_path, "a/b/c.bin")
    assert is_within(tmp_path, "a/../c.bin")
    assert not is_within(tmp_path, "../c.bin")
    assert not is_within(tmp_path, "/etc/passwd")
