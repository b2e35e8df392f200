# src/dagflow/core/__init__.py
"""
Core do dagflow.

Componentes principais:
    - expression   → avaliação de fragmentos `${{ ... }}`
    - variables    → árvore de variáveis preguiçosa e escopos por step
    - graph        → validação de DAG e construção do grafo de steps
    - iterators    → protocolo de pull entre steps de fluxo
    - pipeline     → contratos de step, definições, registry e contexto
    - engine       → planejamento, execução, abort, dry-run e locks
    - traceability → registro de runs e run stores
    - config       → resolução de configuração (merge, hashing, settings)

Princípios fundamentais:
    - Nenhuma decisão silenciosa: todo comportamento é explícito e testado
    - Estado e efeitos colaterais são sempre rastreáveis
    - Abort e falhas de expressão são resultados explícitos, não exceções
"""
