from __future__ import annotations

import pytest

from selective_build.allowlist import (
    InvalidOperatorNameError,
    OperatorNameView,
    allowlist_contains,
    op_allowlist_check,
    schema_allowlist_check,
    schema_operator_name,
)
from selective_build.config import ENV_FORCE_SCHEMA_REGISTRATION, ENV_OPERATOR_ALLOWLIST, SelectiveBuildConfig


ADD_SCHEMA = "aten::add.Tensor(Tensor self, Tensor other, *, Scalar alpha=1) -> Tensor"


def _only(*names: str) -> SelectiveBuildConfig:
    return SelectiveBuildConfig(operator_allowlist=";".join(names))


@pytest.mark.parametrize(
    "allowlist,item,expected",
    [
        ("a;bc;d", "bc", True),
        ("a;bc;d", "b", False),
        ("a;bc;d", "a", True),
        ("a;bc;d", "d", True),
        ("a;bc;d", "bc;d", False),
        ("abc", "abc", True),
        ("abc", "ab", False),
        ("", "", True),
        ("", "x", False),
        (";;", "", True),
        ("a;;b", "", True),
        ("a;b;", "", True),
        ("a;b", "", False),
        ("a;b;", "b", True),
        (";a", "a", True),
    ],
)
def test_allowlist_contains(allowlist: str, item: str, expected: bool) -> None:
    assert allowlist_contains(allowlist, item) is expected


def test_operator_name_view_parse() -> None:
    v = OperatorNameView.parse("aten::add.Tensor")
    assert v.name == "aten::add"
    assert v.overload_name == "Tensor"
    assert str(v) == "aten::add.Tensor"
    assert OperatorNameView.parse("aten::add") == OperatorNameView("aten::add", "")
    # Only the first '.' splits.
    assert OperatorNameView.parse("aten::add.out.x").overload_name == "out.x"


def test_unconfigured_allowlist_admits_everything() -> None:
    cfg = SelectiveBuildConfig()
    for op in ("aten::add", "aten::add.Tensor", "quantized::conv2d", "custom::whatever.overload"):
        assert op_allowlist_check(op, config=cfg)


def test_overload_suffix_is_stripped() -> None:
    cfg = _only("aten::add")
    assert op_allowlist_check("aten::add", config=cfg)
    assert op_allowlist_check("aten::add.Tensor", config=cfg)
    assert op_allowlist_check("aten::add.out", config=cfg)
    assert not op_allowlist_check("aten::add_.Tensor", config=cfg)
    assert not op_allowlist_check("aten::sub.Tensor", config=cfg)


def test_overload_qualified_allowlist_entry_never_matches() -> None:
    cfg = _only("aten::add.Tensor")
    assert not op_allowlist_check("aten::add.Tensor", config=cfg)
    assert not op_allowlist_check("aten::add", config=cfg)


def test_empty_allowlist_admits_nothing() -> None:
    cfg = SelectiveBuildConfig(operator_allowlist="")
    assert not op_allowlist_check("aten::add", config=cfg)


def test_missing_namespace_is_an_assertion_error() -> None:
    with pytest.raises(InvalidOperatorNameError):
        op_allowlist_check("add", config=SelectiveBuildConfig())
    with pytest.raises(AssertionError):
        op_allowlist_check("add.Tensor", config=_only("aten::add"))


def test_schema_operator_name() -> None:
    assert schema_operator_name(ADD_SCHEMA) == "aten::add.Tensor"
    assert schema_operator_name("aten::relu") == "aten::relu"
    assert schema_operator_name("aten::relu.x") == "aten::relu.x"


def test_schema_check_delegates_to_operator_check() -> None:
    assert schema_allowlist_check(ADD_SCHEMA, config=_only("aten::add"))
    assert not schema_allowlist_check(ADD_SCHEMA, config=_only("aten::sub"))
    assert schema_allowlist_check("aten::add(Tensor a, Tensor b) -> Tensor", config=_only("aten::add"))


def test_schema_without_argument_list() -> None:
    cfg = _only("aten::relu")
    assert schema_allowlist_check("aten::relu", config=cfg)
    assert schema_allowlist_check("aten::relu.out", config=cfg)
    assert not schema_allowlist_check("aten::relu6", config=cfg)


def test_schema_overload_does_not_change_decision() -> None:
    for names in (("aten::add",), ("aten::sub",), ("aten::sub", "aten::add")):
        cfg = _only(*names)
        assert schema_allowlist_check("aten::add(Tensor a) -> Tensor", config=cfg) == schema_allowlist_check(
            "aten::add.Tensor(Tensor a) -> Tensor", config=cfg
        )


def test_forced_schema_registration_skips_name_checks() -> None:
    cfg = SelectiveBuildConfig(operator_allowlist="aten::sub", force_schema_registration=True)
    assert schema_allowlist_check(ADD_SCHEMA, config=cfg)
    # Not even parsed, so a malformed name is fine here.
    assert schema_allowlist_check("no_namespace(Tensor a) -> Tensor", config=cfg)
    # The operator check itself is unaffected.
    assert not op_allowlist_check("aten::add", config=cfg)


def test_checks_are_idempotent() -> None:
    cfg = _only("aten::add", "aten::mul")
    first = [schema_allowlist_check(ADD_SCHEMA, config=cfg), op_allowlist_check("aten::div", config=cfg)]
    second = [schema_allowlist_check(ADD_SCHEMA, config=cfg), op_allowlist_check("aten::div", config=cfg)]
    assert first == second == [True, False]


def test_default_config_comes_from_environment(monkeypatch) -> None:
    from selective_build.config import reset_build_config

    monkeypatch.setenv(ENV_OPERATOR_ALLOWLIST, "aten::add;aten::sub")
    reset_build_config()
    assert op_allowlist_check("aten::sub.Tensor")
    assert not op_allowlist_check("aten::mul.Tensor")

    monkeypatch.setenv(ENV_FORCE_SCHEMA_REGISTRATION, "1")
    reset_build_config()
    assert schema_allowlist_check("aten::mul.Tensor(Tensor self, Tensor other) -> Tensor")
