"""Tests for craft.core.result module."""

import pytest

from craft.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    def test_create_ok(self) -> None:
        result = Ok(42)
        assert result.value == 42
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_unwrap(self) -> None:
        assert Ok("x").unwrap() == "x"
        assert Ok(1).unwrap_or(0) == 1

    def test_map(self) -> None:
        assert Ok(21).map(lambda x: x * 2) == Ok(42)

    def test_repr(self) -> None:
        assert repr(Ok("a")) == "Ok('a')"


class TestErr:
    def test_create_err(self) -> None:
        result = Err("boom")
        assert result.error == "boom"
        assert result.is_ok() is False
        assert result.is_err() is True

    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_map_is_noop(self) -> None:
        err = Err("boom")
        assert err.map(lambda x: x) is err


class TestPatternMatching:
    def test_match_variants(self) -> None:
        def describe(result: Result[int, str]) -> str:
            match result:
                case Ok(value):
                    return f"ok {value}"
                case Err(error):
                    return f"err {error}"

        assert describe(Ok(1)) == "ok 1"
        assert describe(Err("x")) == "err x"

    def test_type_guards(self) -> None:
        assert is_ok(Ok(1))
        assert not is_ok(Err(1))
        assert is_err(Err(1))
        assert not is_err(Ok(1))
