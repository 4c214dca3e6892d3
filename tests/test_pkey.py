import pytest

from paillier_pkey.errors import BindingError, NoKeyError, UnsupportedOperation
from paillier_pkey.paillier_encryption import PaillierKey
from paillier_pkey.paillier_method import PKEY_PAILLIER, PaillierMethod, register
from paillier_pkey.pkey import KeyHandle, MethodRegistry, PkeyContext


@pytest.fixture(scope="module")
def key_material():
    k = PaillierKey()
    k.generate_key(512)
    return k


@pytest.fixture
def registry():
    r = MethodRegistry()
    register(r)
    return r


def test_registry_lookup(registry):
    assert PKEY_PAILLIER in registry
    assert isinstance(registry.find(PKEY_PAILLIER), PaillierMethod)


def test_registry_unknown_id(registry):
    with pytest.raises(UnsupportedOperation):
        registry.find(4242)


def test_registry_rejects_duplicate(registry):
    with pytest.raises(ValueError):
        register(registry)


def test_registries_are_independent(registry):
    assert PKEY_PAILLIER not in MethodRegistry()


def test_assign_transfers_ownership(key_material):
    key = key_material.copy()
    first, second = KeyHandle(), KeyHandle()
    first.assign(PKEY_PAILLIER, key)
    assert first.get0(PKEY_PAILLIER) is key
    assert key.owner is first

    second.assign(PKEY_PAILLIER, key)
    assert second.get0(PKEY_PAILLIER) is key
    assert first.get0(PKEY_PAILLIER) is None
    assert key.owner is second


def test_assign_replaces_held_key(key_material):
    old, new = key_material.copy(), key_material.copy()
    handle = KeyHandle()
    handle.assign(PKEY_PAILLIER, old)
    handle.assign(PKEY_PAILLIER, new)
    assert old.owner is None
    assert handle.get0(PKEY_PAILLIER) is new


def test_assign_wrong_type():
    handle = KeyHandle(pkey_id=6)
    with pytest.raises(BindingError):
        handle.assign(PKEY_PAILLIER, PaillierKey())


def test_assign_nothing():
    with pytest.raises(BindingError):
        KeyHandle().assign(PKEY_PAILLIER, None)


def test_get0_wrong_type(key_material):
    handle = KeyHandle()
    handle.assign(PKEY_PAILLIER, key_material.copy())
    assert handle.get0(6) is None


def test_free_releases_key(key_material):
    key = key_material.copy()
    handle = KeyHandle()
    handle.assign(PKEY_PAILLIER, key)
    handle.free()
    assert handle.get0(PKEY_PAILLIER) is None
    assert key.n is None
    assert key.owner is None


def test_context_from_id(registry):
    ctx = PkeyContext.from_id(PKEY_PAILLIER, registry)
    assert ctx.data is not None
    assert ctx.pkey is None
    assert ctx.get0_key() is None


def test_dup_with_key(registry, key_material):
    ctx = PkeyContext.from_id(PKEY_PAILLIER, registry)
    ctx.assign_key(key_material.copy())
    dup = ctx.dup(include_key=True)
    assert dup.get0_key() is not ctx.get0_key()
    assert dup.get0_key().n == key_material.n
    assert dup.pkey is not ctx.pkey


def test_dup_with_key_requires_key(registry):
    ctx = PkeyContext.from_id(PKEY_PAILLIER, registry)
    with pytest.raises(NoKeyError):
        ctx.dup(include_key=True)


def test_dup_without_key_leaves_key_behind(registry, key_material):
    ctx = PkeyContext.from_id(PKEY_PAILLIER, registry)
    ctx.assign_key(key_material.copy())
    assert ctx.dup().get0_key() is None


def test_free_context(registry, key_material):
    ctx = PkeyContext.from_id(PKEY_PAILLIER, registry)
    key = key_material.copy()
    ctx.assign_key(key)
    ctx.free()
    assert ctx.data is None
    assert ctx.pkey is None
    assert key.n is None
    ctx.free()
