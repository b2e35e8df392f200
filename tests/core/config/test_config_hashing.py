# tests/core/config/test_config_hashing.py
"""
Testes do hash canônico de configuração.

O hash é o SHA-256 da serialização JSON canônica (chaves ordenadas,
separadores compactos), independente da ordem de inserção.
"""
import hashlib
import json

import pytest

try:
    from dagflow.core.config import compute_config_hash
except Exception as e:
    compute_config_hash = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if compute_config_hash is None:
        pytest.fail(f"Missing dagflow.core.config.compute_config_hash. Import error: {_IMPORT_ERR}")


def test_hash_is_deterministic():
    _require_imports()
    h1 = compute_config_hash({"b": 1, "a": {"y": 2, "x": 1}})
    h2 = compute_config_hash({"a": {"x": 1, "y": 2}, "b": 1})
    assert h1 == h2
    assert isinstance(h1, str)
    assert len(h1) == 64


def test_hash_matches_sha256_of_canonical_json():
    _require_imports()
    cfg = {"engine": {"fail_fast": True, "log_level": "INFO"}}
    canonical = json.dumps(cfg, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    expected = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    assert compute_config_hash(cfg) == expected


def test_hash_changes_on_override():
    _require_imports()
    base = {"engine": {"log_level": "INFO"}}
    changed = {"engine": {"log_level": "DEBUG"}}
    assert compute_config_hash(base) != compute_config_hash(changed)


def test_hash_rejects_non_dict():
    _require_imports()
    with pytest.raises(TypeError):
        compute_config_hash(["engine"])
