# tests/test_smoke.py
"""
Testes de sanidade estrutural (smoke tests) do dagflow.

Garantem apenas que o pacote importa e que a API pública existe.
Não validam comportamento de domínio.
"""

import pytest


def test_smoke():
    try:
        import dagflow
    except Exception as e:
        pytest.fail(f"dagflow could not be imported: {e}")

    for name in dagflow.__all__:
        assert hasattr(dagflow, name), name
