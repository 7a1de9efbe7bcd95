import pytest

from qpos.validation import (
    MAX_AMOUNT_CENTS,
    ValidationError,
    optional_int,
    require_amount_cents,
    require_int,
    require_positive_int,
    require_str,
)


class TestRequireInt:
    def test_accepts_int_and_numeric_string(self):
        assert require_int({"q": 3}, "q") == 3
        assert require_int({"q": " 42 "}, "q") == 42

    @pytest.mark.parametrize("value", [True, 1.0, "1.5", "1e2", "", "x", [1]])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError):
            require_int({"q": value}, "q")

    def test_missing(self):
        with pytest.raises(ValidationError, match="q is required"):
            require_int({}, "q")

    def test_optional(self):
        assert optional_int({}, "q") is None
        assert optional_int({"q": None}, "q") is None
        assert optional_int({"q": "7"}, "q") == 7


def test_positive_int_rejects_zero():
    with pytest.raises(ValidationError):
        require_positive_int({"quantity": 0}, "quantity")


def test_amount_bounds():
    assert require_amount_cents({"a": 0}, "a") == 0
    with pytest.raises(ValidationError):
        require_amount_cents({"a": -1}, "a")
    with pytest.raises(ValidationError):
        require_amount_cents({"a": MAX_AMOUNT_CENTS + 1}, "a")


def test_require_str_strips_and_limits():
    assert require_str({"code": "  save10 "}, "code") == "save10"
    with pytest.raises(ValidationError):
        require_str({"code": "   "}, "code")
    with pytest.raises(ValidationError):
        require_str({"code": "x" * 5}, "code", max_length=4)
