# src/dagflow/core/pipeline/__init__.py
"""
# Pipeline Core — dagflow

Este pacote define os **contratos canônicos** e as **estruturas
fundamentais** de um dataflow.

Um dataflow é modelado como um **DAG explícito de Steps**, onde:
- cada Step declara alias, tipo (chave do registry) e dependências
- a execução é coordenada exclusivamente pelo Engine
- o estado compartilhado vive na árvore de variáveis da run

## Componentes

- **types**: `StepRole`, `LinkKind`, `LinkRange`, `Status`, `StepOutcome`
- **definition**: `StepDefinition`, `Dependency`, `Edge`, `DataflowDefinition`
- **step**: `StepType` (Protocol), `BaseStep` e famílias por papel
- **capabilities**: traits combináveis (`SideEffectPolicy`, `RunCheck`)
- **registry**: `StepTypeRegistry` (chave → factory)
- **context**: `RunContext` (identidade, scratch, dry-run, log)
- **store**: `DefinitionStore`, `InMemoryDefinitionStore`, `load_dataflow`

## Princípios Fundamentais

- Steps **não conhecem** o Engine nem outros steps
- Steps **não controlam** ordem de execução
- Dependências são **explícitas e declarativas**

## Limites Explícitos

- Não planeja execução
- Não executa dataflows
"""
