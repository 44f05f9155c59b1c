from __future__ import annotations

import pytest

from selective_build.config import SelectiveBuildConfig
from selective_build.dispatch_key import (
    MOBILE_DISPATCH_KEY_TABLE,
    MOBILE_DISPATCH_KEYS,
    DispatchKey,
    UnknownDispatchKeyError,
    dispatch_key_allowlist_check,
    find_dispatch_key,
    parse_dispatch_key,
)


MOBILE = SelectiveBuildConfig(mobile=True)
SERVER = SelectiveBuildConfig()


def test_mobile_table_classifies_every_key() -> None:
    assert set(MOBILE_DISPATCH_KEY_TABLE) == set(DispatchKey)


def test_mobile_keys() -> None:
    assert MOBILE_DISPATCH_KEYS == {
        DispatchKey.CPU,
        DispatchKey.Vulkan,
        DispatchKey.QuantizedCPU,
        DispatchKey.BackendSelect,
        DispatchKey.CatchAll,
    }


def test_mobile_profile_restricts_backends() -> None:
    assert dispatch_key_allowlist_check(DispatchKey.CPU, config=MOBILE)
    assert not dispatch_key_allowlist_check(DispatchKey.CUDA, config=MOBILE)
    for key in DispatchKey:
        assert dispatch_key_allowlist_check(key, config=MOBILE) is (key in MOBILE_DISPATCH_KEYS)


@pytest.mark.parametrize("key", list(DispatchKey))
def test_unrestricted_profile_admits_all(key: DispatchKey) -> None:
    assert dispatch_key_allowlist_check(key, config=SERVER)


def test_backend_table_is_independent_of_operator_allowlist() -> None:
    cfg = SelectiveBuildConfig(operator_allowlist="CUDA;Metal", mobile=True)
    assert not dispatch_key_allowlist_check(DispatchKey.CUDA, config=cfg)
    assert not dispatch_key_allowlist_check(DispatchKey.Metal, config=cfg)


def test_find_dispatch_key() -> None:
    class _TorchLikeKey:
        name = "QuantizedCPU"

    assert find_dispatch_key("CPU") is DispatchKey.CPU
    assert find_dispatch_key(DispatchKey.Vulkan) is DispatchKey.Vulkan
    assert find_dispatch_key(_TorchLikeKey()) is DispatchKey.QuantizedCPU
    assert find_dispatch_key("NotAKey") is None
    assert find_dispatch_key(42) is None


def test_parse_dispatch_key_suggests_close_name() -> None:
    with pytest.raises(UnknownDispatchKeyError, match="Vulkan"):
        parse_dispatch_key("Vulcan")


def test_check_accepts_names_and_rejects_unknown_keys() -> None:
    assert dispatch_key_allowlist_check("Vulkan", config=MOBILE)
    assert not dispatch_key_allowlist_check("Metal", config=MOBILE)
    with pytest.raises(UnknownDispatchKeyError, match="Vulkan"):
        dispatch_key_allowlist_check("Vulcan", config=MOBILE)
    with pytest.raises(UnknownDispatchKeyError):
        dispatch_key_allowlist_check("Bogus", config=MOBILE)
