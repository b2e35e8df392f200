# src/dagflow/core/variables/nodes.py
"""
Nós da árvore de variáveis.

A árvore é composta por:
    - `VarObject`: nó interno (mapeamento nome → nó filho)
    - `VarValue`: folha com valor bruto, resolvido sob demanda
    - `VariableScope`: `VarObject` "visível", com API `get/set/evaluate`
      e que serve de raiz local para referências relativas

Resolução preguiçosa:
    - o valor bruto de uma folha pode conter fragmentos `${{ ... }}`
    - a resolução acontece apenas na leitura e fica em cache até a
      próxima escrita em qualquer ponto da árvore (contador de geração)
    - referências são buscadas primeiro na raiz e depois na raiz local
      (o escopo ao qual a folha pertence)
    - na leitura da árvore, fragmentos que não resolvem permanecem
      literais; quem precisa de avaliação estrita usa `evaluate`

Invariantes:
    - mapeamentos atribuídos viram subárvores; listas e escalares viram folhas
    - uma subárvore nunca é sobrescrita por um escalar
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Sequence

from dagflow.core.exceptions import VariableScopeError
from dagflow.core.expression import keep_unresolved, raise_on_failure

if TYPE_CHECKING:  # pragma: no cover
    from .tree import VariableTree


def split_path(path: str) -> List[str]:
    return [level for level in (path or "").split(".") if level != ""]


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)


def _place(bindings: Dict[str, Any], levels: Sequence[str], value: Any) -> None:
    target = bindings
    for level in levels[:-1]:
        current = target.get(level)
        if not isinstance(current, dict):
            current = {}
            target[level] = current
        target = current
    target[levels[-1]] = value


class VarNode:
    def __init__(
        self,
        name: str,
        parent: Optional["VarObject"],
        tree: "VariableTree",
        local_root: Optional["VariableScope"],
    ):
        self.name = name
        self.parent = parent
        self.tree = tree
        self.local_root = local_root

    @property
    def path(self) -> str:
        names = []
        node: Optional[VarNode] = self
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = node.parent
        return ".".join(reversed(names))

    def get_resolved(self) -> Any:
        raise NotImplementedError

    def get_source(self) -> Any:
        raise NotImplementedError

    def get_redacted(self) -> Any:
        return self.get_resolved()


class VarValue(VarNode):
    def __init__(self, name, parent, tree, local_root, raw: Any = None):
        super().__init__(name, parent, tree, local_root)
        self.raw = raw
        self._cache: Any = None
        self._generation = -1
        self._resolving = False

    def set(self, value: Any) -> None:
        self.raw = value
        self._generation = -1

    def get_source(self) -> Any:
        return self.raw

    def has_expression(self) -> bool:
        evaluator = self.tree.evaluator
        return any(evaluator.has_expression(text) for text in _iter_strings(self.raw))

    def get_resolved(self) -> Any:
        if not self.has_expression():
            return self.raw
        if self._generation == self.tree.generation:
            return self._cache
        if self._resolving:
            # auto-referência: devolve o valor bruto
            return self.raw

        self._resolving = True
        try:
            bindings = self.bindings()
            value = self.tree.evaluator.resolve_recursive(self.raw, bindings, on_failure=keep_unresolved)
        finally:
            self._resolving = False

        self._cache = value
        self._generation = self.tree.generation
        return value

    def references(self) -> List[str]:
        names: List[str] = []
        for text in _iter_strings(self.raw):
            for name in self.tree.evaluator.find_variable_names(text):
                if name not in names:
                    names.append(name)
        return names

    def bindings(self) -> Dict[str, Any]:
        """Monta apenas os caminhos referenciados pelo valor bruto."""
        bindings: Dict[str, Any] = {}
        for name in self.references():
            levels = name.split(".")
            base: Optional[VarObject] = None
            if levels[0] in self.tree.children:
                base = self.tree
            elif self.local_root is not None and levels[0] in self.local_root.children:
                base = self.local_root
            if base is None:
                continue

            node: VarNode = base
            walked: List[str] = []
            for level in levels:
                if not isinstance(node, VarObject):
                    break
                child = node.children.get(level)
                if child is None:
                    break
                node = child
                walked.append(level)
            if walked:
                _place(bindings, walked, node.get_resolved())
        return bindings


class VarObject(VarNode):
    def __init__(self, name, parent, tree, local_root):
        super().__init__(name, parent, tree, local_root)
        self.children: Dict[str, VarNode] = {}

    def _scope(self) -> Optional["VariableScope"]:
        return self if isinstance(self, VariableScope) else self.local_root

    def new_object(self, name: str) -> "VarObject":
        child = VarObject(name, self, self.tree, self._scope())
        self.children[name] = child
        return child

    def new_value(self, name: str, raw: Any = None) -> VarValue:
        child = VarValue(name, self, self.tree, self._scope(), raw)
        self.children[name] = child
        return child

    def find(self, levels: Sequence[str]) -> Optional[VarNode]:
        node: VarNode = self
        for level in levels:
            if not isinstance(node, VarObject):
                return None
            child = node.children.get(level)
            if child is None:
                return None
            node = child
        return node

    def ensure_object(self, levels: Sequence[str]) -> "VarObject":
        node: VarObject = self
        for level in levels:
            child = node.children.get(level)
            if child is None:
                child = node.new_object(level)
            elif not isinstance(child, VarObject):
                raise VariableScopeError(
                    message=f"Cannot create '{level}' below the value node '{child.path}'",
                    details={"path": child.path},
                )
            node = child
        return node

    def fill(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            self.put(str(key), value)

    def put(self, name: str, value: Any) -> VarNode:
        existing = self.children.get(name)
        if isinstance(value, Mapping):
            if not isinstance(existing, VarObject):
                existing = self.new_object(name)
            existing.fill(value)
            return existing
        if isinstance(existing, VarObject):
            raise VariableScopeError(
                message=f"Cannot set the object node '{existing.path}' to a scalar value",
                details={"path": existing.path},
            )
        if existing is None:
            return self.new_value(name, value)
        existing.set(value)
        return existing

    def get_resolved(self) -> Dict[str, Any]:
        return {name: child.get_resolved() for name, child in self.children.items()}

    def get_source(self) -> Dict[str, Any]:
        return {name: child.get_source() for name, child in self.children.items()}

    def get_redacted(self) -> Dict[str, Any]:
        return {name: child.get_redacted() for name, child in self.children.items()}


class VariableScope(VarObject):
    """
    Nó visível da árvore: lê, escreve e avalia expressões no próprio escopo.

    Caminhos são sempre relativos ao escopo (`scope.get("vars.limit")`).
    """

    def __init__(self, name, parent, tree):
        super().__init__(name, parent, tree, None)
        self.local_root = self

    def get(self, path: str = "") -> Any:
        node = self.find(split_path(path))
        return None if node is None else node.get_resolved()

    def get_raw(self, path: str = "") -> Any:
        node = self.find(split_path(path))
        return None if node is None else node.get_source()

    def get_redacted(self, path: str = "") -> Any:  # type: ignore[override]
        levels = split_path(path)
        if not levels:
            return self.redacted()
        node = self.find(levels)
        return None if node is None else node.get_redacted()

    def redacted(self) -> Dict[str, Any]:
        return VarObject.get_redacted(self)

    def set(self, path: str, value: Any) -> None:
        levels = split_path(path)
        if not levels:
            if not isinstance(value, Mapping):
                raise VariableScopeError(
                    message=f"Cannot set the object node '{self.path}' to a scalar value",
                    details={"path": self.path},
                )
            self.fill(value)
        else:
            self.ensure_object(levels[:-1]).put(levels[-1], value)
        self.tree.touch()

    def evaluate(self, template: Any, on_failure=None, extra: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Avalia um template no escopo deste nó (falha estrita por padrão).

        `extra` adiciona bindings que não vivem na árvore (ex.: `record`).
        """
        holder = VarValue("", self, self.tree, self, template)
        bindings = holder.bindings()
        if extra:
            bindings.update(extra)
        return self.tree.evaluator.resolve_recursive(template, bindings, on_failure or raise_on_failure)
